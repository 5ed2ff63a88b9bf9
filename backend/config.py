import os
from dataclasses import dataclass
from typing import Optional

from services.gateway import ProviderConfig, make_provider

API_KEY_VARS = {"openrouter": "OPENROUTER_API_KEY", "google": "GOOGLE_API_KEY"}


def _float_or_none(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    provider: ProviderConfig
    invalid_output_mode: str = "error"
    data_dir: str = "data"
    port: int = 3000

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        """Read settings from the environment (call load_dotenv() first to pick up .env)."""
        env = os.environ if env is None else env
        name = env.get("LLM_PROVIDER", "openrouter").strip().lower()
        provider = make_provider(
            name,
            api_key=env.get(API_KEY_VARS.get(name, "")),
            endpoint=env.get("LLM_ENDPOINT"),
            model=env.get("LLM_MODEL"),
            vision_model=env.get("LLM_VISION_MODEL"),
            timeout=_float_or_none(env.get("LLM_TIMEOUT")),
        )
        return cls(
            provider=provider,
            invalid_output_mode=env.get("INVALID_OUTPUT_MODE", "error").strip().lower(),
            data_dir=env.get("DATA_DIR", "data"),
            port=int(env.get("PORT", 3000)),
        )
