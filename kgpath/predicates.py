"""Predicate normalization."""

BIOLINK_PREFIX = "biolink:"

SPECIAL_CASES = {
    "treats_or_applied_or_studied_to_treat": "studied to treat",
}


def clean_predicate(predicate: str) -> str:
    """Turn a biolink predicate into a readable phrase.

    biolink:treats -> treats
    biolink:gene_associated_with_condition -> gene associated with condition
    """
    if not predicate:
        return ""
    if predicate.startswith(BIOLINK_PREFIX):
        predicate = predicate[len(BIOLINK_PREFIX) :]
    if predicate in SPECIAL_CASES:
        return SPECIAL_CASES[predicate]
    return predicate.replace("_", " ")
