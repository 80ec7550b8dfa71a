"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    search: bool = False


@dataclass
class PromptsConfig:
    debater: str
    judge: str
    judge_request: str


@dataclass
class FallbacksConfig:
    debate_reply: str
    empty_reply: str
    score_feedback: str = "Evaluation unavailable"


@dataclass
class DefaultsConfig:
    gateway: str
    listening_delay_sec: float = 0.8
    debating_delay_sec: float = 0.6
    respond_to_topic: bool = True


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    fallbacks: FallbacksConfig
    preset_topics: list[str] = field(default_factory=list)
    available_gateways: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs gateways with missing API keys but does not raise; callers check
    available_gateways.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        gateway=str(defaults_raw["gateway"]),
        listening_delay_sec=float(defaults_raw.get("listening_delay_sec", 0.8)),
        debating_delay_sec=float(defaults_raw.get("debating_delay_sec", 0.6)),
        respond_to_topic=bool(defaults_raw.get("respond_to_topic", True)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        debater=prompts_raw["debater"],
        judge=prompts_raw["judge"],
        judge_request=prompts_raw["judge_request"],
    )

    fallbacks_raw = raw["fallbacks"]
    fallbacks = FallbacksConfig(
        debate_reply=str(fallbacks_raw["debate_reply"]).strip(),
        empty_reply=str(fallbacks_raw["empty_reply"]).strip(),
        score_feedback=str(fallbacks_raw.get("score_feedback", "Evaluation unavailable")),
    )

    models: dict[str, ModelConfig] = {}
    available_gateways: set[str] = set()

    for gateway_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=gateway_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
            search=bool(model_raw.get("search", False)),
        )
        models[gateway_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_gateways.add(gateway_name)
            logger.info("Gateway available: %s", gateway_name)
        else:
            logger.info(
                "Gateway skipped (no API key): %s, set %s in .env",
                gateway_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        fallbacks=fallbacks,
        preset_topics=[str(t) for t in raw.get("preset_topics", [])],
        available_gateways=available_gateways,
    )
