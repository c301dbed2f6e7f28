"""codesearch configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (EMBEDDING_PROVIDER, OLLAMA_HOST, COLLECTION_NAME, ...)
  3. Per-project codesearch.yaml  (current working directory)
  4. Global ~/.codesearch/config.yaml
  5. Hardcoded defaults

Config files must never contain API keys; the hosted provider reads
OPENAI_API_KEY from the environment.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".codesearch"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "codesearch.yaml"

# Matches: api_key, apikey, api-key, api_secret, _token (suffix), standalone token,
# standalone secret, _secret (suffix), password, passwd, credential(s).
# Does NOT match legitimate keys like max_chunk_size or request_timeout.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "store", "indexing", "search", "server", "logging"]
)

PROVIDERS: frozenset[str] = frozenset(["openai", "ollama"])
TRANSPORTS: frozenset[str] = frozenset(["stdio", "sse"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when configuration is invalid, forbidden, or incomplete."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding provider configuration (codesearch.yaml: embedding:).

    Attributes:
        provider: 'ollama' (local HTTP endpoint) or 'openai' (hosted API).
        hosted_model: LiteLLM model string used by the hosted provider.
        hosted_dimensions: Vector size produced by *hosted_model*.
        ollama_host: Base URL of the local embedding endpoint.
        ollama_model: Model name sent with every local embedding request.
        ollama_dimensions: Vector size of *ollama_model*; also the size of the
            zero vector substituted when a local request fails.
        request_timeout: Per-request timeout in seconds for the local endpoint.
    """

    provider: str = "ollama"
    hosted_model: str = "openai/text-embedding-3-small"
    hosted_dimensions: int = 1536
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "all-minilm"
    ollama_dimensions: int = 384
    request_timeout: float = 30.0


@dataclass
class StoreCfg:
    """Vector store configuration (codesearch.yaml: store:)."""

    path: str = str(_GLOBAL_CONFIG_DIR / "codesearch.db")
    collection: str = "codebase"


@dataclass
class IndexingCfg:
    """Chunking and ingestion limits (codesearch.yaml: indexing:)."""

    max_chunk_size: int = 1500
    max_line_length: int = 10_000
    batch_size: int = 100


@dataclass
class SearchCfg:
    """Query defaults (codesearch.yaml: search:)."""

    default_limit: int = 10
    project_scan_cap: int = 100_000


@dataclass
class ServerCfg:
    """MCP adapter settings (codesearch.yaml: server:)."""

    host: str = "127.0.0.1"
    port: int = 3001
    transport: str = "stdio"


@dataclass
class LoggingCfg:
    """Log output settings (codesearch.yaml: logging:)."""

    level: str = "INFO"
    json: bool = False


@dataclass
class CodeSearchConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    store: StoreCfg = field(default_factory=StoreCfg)
    indexing: IndexingCfg = field(default_factory=IndexingCfg)
    search: SearchCfg = field(default_factory=SearchCfg)
    server: ServerCfg = field(default_factory=ServerCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: CodeSearchConfig) -> None:
    if cfg.embedding.provider not in PROVIDERS:
        raise ConfigError(
            f"Unknown embedding provider '{cfg.embedding.provider}'.\n"
            f"  Supported: {', '.join(sorted(PROVIDERS))}"
        )
    if cfg.server.transport not in TRANSPORTS:
        raise ConfigError(
            f"Unknown server transport '{cfg.server.transport}'.\n"
            f"  Supported: {', '.join(sorted(TRANSPORTS))}"
        )
    for name, value in (
        ("indexing.max_chunk_size", cfg.indexing.max_chunk_size),
        ("indexing.max_line_length", cfg.indexing.max_line_length),
        ("indexing.batch_size", cfg.indexing.batch_size),
        ("search.project_scan_cap", cfg.search.project_scan_cap),
        ("embedding.ollama_dimensions", cfg.embedding.ollama_dimensions),
        ("embedding.hosted_dimensions", cfg.embedding.hosted_dimensions),
    ):
        if value < 1:
            raise ConfigError(f"{name} must be >= 1, got {value}")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> CodeSearchConfig:
    """Build a *CodeSearchConfig* from a merged raw YAML dict."""
    cfg = CodeSearchConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        d = cfg.embedding
        cfg.embedding = EmbeddingCfg(
            provider=str(e.get("provider", d.provider)).lower(),
            hosted_model=str(e.get("hosted_model", d.hosted_model)),
            hosted_dimensions=int(e.get("hosted_dimensions", d.hosted_dimensions)),
            ollama_host=str(e.get("ollama_host", d.ollama_host)),
            ollama_model=str(e.get("ollama_model", d.ollama_model)),
            ollama_dimensions=int(e.get("ollama_dimensions", d.ollama_dimensions)),
            request_timeout=float(e.get("request_timeout", d.request_timeout)),
        )

    if "store" in data:
        s = data["store"] or {}
        cfg.store = StoreCfg(
            path=str(s.get("path", cfg.store.path)),
            collection=str(s.get("collection", cfg.store.collection)),
        )

    if "indexing" in data:
        i = data["indexing"] or {}
        d = cfg.indexing
        cfg.indexing = IndexingCfg(
            max_chunk_size=int(i.get("max_chunk_size", d.max_chunk_size)),
            max_line_length=int(i.get("max_line_length", d.max_line_length)),
            batch_size=int(i.get("batch_size", d.batch_size)),
        )

    if "search" in data:
        q = data["search"] or {}
        cfg.search = SearchCfg(
            default_limit=int(q.get("default_limit", cfg.search.default_limit)),
            project_scan_cap=int(q.get("project_scan_cap", cfg.search.project_scan_cap)),
        )

    if "server" in data:
        sv = data["server"] or {}
        cfg.server = ServerCfg(
            host=str(sv.get("host", cfg.server.host)),
            port=int(sv.get("port", cfg.server.port)),
            transport=str(sv.get("transport", cfg.server.transport)),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)),
            json=bool(lg.get("json", cfg.logging.json)),
        )

    return cfg


def _apply_env_overrides(cfg: CodeSearchConfig) -> CodeSearchConfig:
    """Apply environment variable overrides (layer 2)."""
    if provider := os.environ.get("EMBEDDING_PROVIDER"):
        cfg.embedding.provider = provider.lower()
    if model := os.environ.get("OPENAI_MODEL"):
        # Bare OpenAI model names get the LiteLLM provider prefix.
        cfg.embedding.hosted_model = model if "/" in model else f"openai/{model}"
    if host := os.environ.get("OLLAMA_HOST"):
        cfg.embedding.ollama_host = host
    if model := os.environ.get("OLLAMA_MODEL"):
        cfg.embedding.ollama_model = model
    if collection := os.environ.get("COLLECTION_NAME"):
        cfg.store.collection = collection
    if db_path := os.environ.get("CODESEARCH_DB"):
        cfg.store.path = db_path
    if host := os.environ.get("SERVER_HOST"):
        cfg.server.host = host
    if port := os.environ.get("SERVER_PORT"):
        try:
            cfg.server.port = int(port)
        except ValueError as exc:
            raise ConfigError(f"SERVER_PORT must be an integer, got '{port}'") from exc
    if level := os.environ.get("CODESEARCH_LOG_LEVEL"):
        cfg.logging.level = level
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> CodeSearchConfig:
    """Load and return a merged *CodeSearchConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *codesearch.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *CodeSearchConfig* with env var overrides applied.

    Raises:
        ConfigError: If a config file contains API-key-like fields, or a value
            is out of range (unknown provider, non-positive sizes).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    try:
        cfg = _cfg_from_dict(merged)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
