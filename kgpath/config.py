from typing import Optional

from pydantic import AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="KGPATH_")

    ars_environment: str = "prod"
    ars_test_url: AnyUrl = "https://ars.test.transltr.io"
    ars_ci_url: AnyUrl = "https://ars.ci.transltr.io"
    ars_dev_url: AnyUrl = "https://ars-dev.transltr.io"
    ars_prod_url: AnyUrl = "https://ars-prod.transltr.io"
    ars_timeout: float = 120.0

    pubmed_url: AnyUrl = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
    pubmed_api_key: Optional[str] = None
    pubmed_tool: str = "kgpath"
    pubmed_email: str = "user@example.com"
    pubmed_timeout: float = 60.0
    pubmed_batch_size: int = 10
    pubmed_rate_limit_delay: float = 0.35  # three requests per second

    enrich_batch_size: int = 3
    enrich_batch_delay: float = 1.0

    max_path_hops: int = 4
    max_paths: int = 1000
    bottleneck_threshold: float = 0.5

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_expiration: int = 86400  # one day
    redis_password: Optional[str] = None

    use_cache: bool = True


settings = Settings()
