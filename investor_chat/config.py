"""Configuration utilities for Investor Chat."""

from __future__ import annotations

import enum
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Sequence, Tuple

from .errors import ConfigError

MODEL_ENV_VAR = "AI_MODEL"
OPENAI_KEY_ENV_VAR = "OPENAI_API_KEY"
GEMINI_KEY_ENV_VAR = "GEMINI_API_KEY"

DEFAULT_MODEL = "gpt-4o"
DEFAULT_OPENAI_PREFIXES: Tuple[str, ...] = ("gpt",)


class ProviderKind(str, enum.Enum):
    """The two interchangeable families of completion providers."""

    OPENAI = "openai"
    GEMINI = "gemini"

    @property
    def label(self) -> str:
        return "OpenAI" if self is ProviderKind.OPENAI else "Gemini"

    @property
    def credential_variable(self) -> str:
        if self is ProviderKind.OPENAI:
            return OPENAI_KEY_ENV_VAR
        return GEMINI_KEY_ENV_VAR


def classify_provider(
    model: str, openai_prefixes: Sequence[str] = DEFAULT_OPENAI_PREFIXES
) -> ProviderKind:
    """Return the provider kind serving ``model``.

    Identifiers that start with one of ``openai_prefixes`` (case-insensitive)
    go to OpenAI; everything else goes to Gemini.
    """

    normalized = (model or "").strip().lower()
    for prefix in openai_prefixes:
        if prefix and normalized.startswith(prefix.lower()):
            return ProviderKind.OPENAI
    return ProviderKind.GEMINI


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Provider selection resolved once at start-up."""

    model: str
    kind: ProviderKind
    api_key: Optional[str] = None

    @property
    def credential_variable(self) -> str:
        return self.kind.credential_variable


@dataclass(slots=True)
class LLMConfig:
    """Settings describing the completion backend."""

    model: Optional[str] = None
    temperature: Optional[float] = None
    timeout: float = 120.0
    openai_prefixes: Tuple[str, ...] = DEFAULT_OPENAI_PREFIXES


@dataclass(slots=True)
class RenderingConfig:
    """Settings for markdown and diagram rendering."""

    diagram_engine: Literal["client", "mmdc"] = "client"
    mmdc_path: str = "mmdc"
    mmdc_timeout: float = 30.0


@dataclass(slots=True)
class LoggingConfig:
    """Where and how long daily log files are kept."""

    directory: Optional[Path] = None
    keep_days: int = 7


@dataclass(slots=True)
class AppConfig:
    """Top-level application configuration."""

    llm: LLMConfig
    rendering: RenderingConfig
    logging: LoggingConfig

    @staticmethod
    def _expand_env(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return os.path.expandvars(str(value))

    @staticmethod
    def _coerce_float(value: Any, key: str) -> float:
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{key} must be a number, got {value!r}") from exc

    @staticmethod
    def _coerce_int(value: Any, key: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{key} must be a whole number, got {value!r}") from exc

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        llm_data = data.get("llm") or {}
        prefixes = llm_data.get("openai_prefixes", list(DEFAULT_OPENAI_PREFIXES))
        if isinstance(prefixes, str):
            prefixes = [prefixes]
        prefixes_tuple = tuple(str(prefix).strip() for prefix in prefixes if str(prefix).strip())
        if not prefixes_tuple:
            raise ConfigError("llm.openai_prefixes must contain at least one prefix")

        temperature = llm_data.get("temperature")
        if temperature is not None:
            temperature = cls._coerce_float(temperature, "llm.temperature")

        timeout = cls._coerce_float(llm_data.get("timeout", 120), "llm.timeout")
        if timeout <= 0:
            raise ConfigError("llm.timeout must be positive")

        llm = LLMConfig(
            model=cls._expand_env(llm_data.get("model")) or None,
            temperature=temperature,
            timeout=timeout,
            openai_prefixes=prefixes_tuple,
        )

        rendering_data = data.get("rendering") or {}
        engine = str(rendering_data.get("diagram_engine", "client")).lower()
        if engine not in {"client", "mmdc"}:
            raise ConfigError("rendering.diagram_engine must be either 'client' or 'mmdc'")
        rendering = RenderingConfig(
            diagram_engine=engine,  # type: ignore[arg-type]
            mmdc_path=cls._expand_env(rendering_data.get("mmdc_path")) or "mmdc",
            mmdc_timeout=cls._coerce_float(
                rendering_data.get("mmdc_timeout", 30), "rendering.mmdc_timeout"
            ),
        )

        logging_data = data.get("logging") or {}
        directory = cls._expand_env(logging_data.get("directory"))
        logging_cfg = LoggingConfig(
            directory=Path(directory).expanduser() if directory else None,
            keep_days=cls._coerce_int(logging_data.get("keep_days", 7), "logging.keep_days"),
        )

        return cls(llm=llm, rendering=rendering, logging=logging_cfg)

    def resolve_provider(self, environ: Mapping[str, str] | None = None) -> ProviderConfig:
        return resolve_provider_config(self.llm, environ)


def resolve_provider_config(
    llm: LLMConfig, environ: Mapping[str, str] | None = None
) -> ProviderConfig:
    """Pick the model and provider kind, then read only that kind's credential."""

    env = os.environ if environ is None else environ
    model = (env.get(MODEL_ENV_VAR) or "").strip() or llm.model or DEFAULT_MODEL
    kind = classify_provider(model, llm.openai_prefixes)
    api_key = (env.get(kind.credential_variable) or "").strip() or None
    return ProviderConfig(model=model, kind=kind, api_key=api_key)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration data from a JSON file, or defaults when no path is given."""

    if path is None:
        return AppConfig.from_dict({})

    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Configuration file is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a JSON object")
    return AppConfig.from_dict(data)


__all__ = [
    "AppConfig",
    "DEFAULT_MODEL",
    "GEMINI_KEY_ENV_VAR",
    "LLMConfig",
    "LoggingConfig",
    "MODEL_ENV_VAR",
    "OPENAI_KEY_ENV_VAR",
    "ProviderConfig",
    "ProviderKind",
    "RenderingConfig",
    "classify_provider",
    "load_config",
    "resolve_provider_config",
]
