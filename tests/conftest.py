import pytest

from kgpath.config import settings


def pytest_addoption(parser):
    """ Add option for long running tests """
    parser.addoption('--longrun', action='store_true', dest="longrun",
                     default=False, help="enable longrun decorated tests")


def pytest_configure(config):
    """ Set option to false by default """
    config.addinivalue_line("markers", "longrun: slow tests, run with --longrun")
    if not config.option.longrun:
        setattr(config.option, 'markexpr', 'not longrun')


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """No Redis, no waiting between PubMed requests."""
    monkeypatch.setattr(settings, "use_cache", False)
    monkeypatch.setattr(settings, "enrich_batch_delay", 0.0)
    monkeypatch.setattr(settings, "pubmed_rate_limit_delay", 0.0)
