from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    anthropic_api_key: str = ""
    log_level: str = "INFO"
    crawl_max_pages: int = 15
    crawl_max_depth: int = 2
    crawl_page_timeout: float = 15.0
    crawl_total_timeout: float = 120.0
    crawl_inter_request_delay: float = 0.5
    service_similarity_threshold: float = 0.7
    faq_similarity_threshold: float = 0.6
