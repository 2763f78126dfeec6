from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI-compatible endpoint (Ollama by default)
    openai_api_key: str = "ollama"
    openai_base_url: str = "http://localhost:11434/v1"
    llm_model: str = "llama3"

    # Research defaults (overridable from the CLI)
    research_depth: int = 2
    research_breadth: int = 3
    research_concurrency: int = 5
    learnings_per_page: int = 5
    max_results_per_query: int = 5

    # Search (DuckDuckGo Lite)
    search_results_limit: int = 5
    search_region: str = "wt-wt"

    # Fetch / extraction
    fetch_timeout_seconds: float = 30.0
    fetch_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    extractor_max_page_chars: int = 120000
    extraction_prompt_max_chars: int = 25000
    min_content_chars: int = 100
    provider_timeout_s: float = 0.0  # 0 disables the per-call deadline

    # URL screening (comma-separated regular expressions)
    screener_allow_patterns: str = ""
    screener_deny_patterns: str = ""

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    app_log_file: str = ""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def screener_allow_list(self) -> list[str]:
        return [p.strip() for p in self.screener_allow_patterns.split(",") if p.strip()]

    @property
    def screener_deny_list(self) -> list[str]:
        return [p.strip() for p in self.screener_deny_patterns.split(",") if p.strip()]


settings = Settings()
