import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from polygot.logger import get_logger

logger = get_logger(__name__)

# Translation configuration constants
DEFAULT_CHUNK_SIZE = 50  # Maximum strings per API call
DEFAULT_CHUNK_DELAY = 0.5  # Seconds to pause between chunks
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SOURCE_LANGUAGE = "en"

# Storage configuration constants
MEMORY_AUTOSAVE_EVERY = 50  # Flush translation memory after this many additions
DEFAULT_STORAGE_DIR = ".polygot"
DEFAULT_MEMORY_DIR = ".polygot/memory"
DEFAULT_GLOSSARY_PATH = ".polygot/glossary.json"

# Provider configuration constants
BUILTIN_PROVIDERS = ["openai", "deepseek", "gemini"]

PROVIDER_DEFAULTS = {
    "max_retries": 3,
    "timeout": 120
}

API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"

CONFIG_ENV = "POLYGOT_CONFIG"
CONFIG_DIR = Path(DEFAULT_STORAGE_DIR)
CONFIG_FILE = CONFIG_DIR / "config.json"

# Default prompts
DEFAULT_PROMPTS = {
    "chunk_translation_prompt": {
        "version": "1.0",
        "description": "System prompt for translating one chunk of UI strings",
        "prompt": """You are a professional translator. Translate the following strings to {target_language_name}.

Requirements:
- Maintain the same tone and style as the original
- Keep the translation natural and idiomatic
- Return ONLY a JSON object where keys are original strings and values are translations{requirements}"""
    }
}

FORMATTING_REQUIREMENT = (
    "\n- Preserve all placeholders, variables, and special formatting "
    "(e.g., {name}, ${variable}, %s, __GLOSSARY_N__)"
)
GLOSSARY_REQUIREMENT = "\n- Keep every __GLOSSARY_N__ token exactly as written, do not translate or modify it"

# Default configuration templates
DEFAULT_CONFIG = {
    "project": {
        "source": "src",
        "output": "locales",
        "languages": ["es", "fr"],
        "model": "",
        "glossary": [],
        "glossary_file": ""
    },
    "ai_provider": "openai",
    "openai": {
        "api_key": API_KEY_PLACEHOLDER,
        "models": ["gpt-4o-mini", "gpt-4o"],  # First is default
        "max_retries": 3,
        "timeout": 120,
        "api_url": "https://api.openai.com/v1/chat/completions"
    },
    "deepseek": {
        "api_key": API_KEY_PLACEHOLDER,
        "models": ["deepseek-chat"],
        "max_retries": 3,
        "timeout": 120,
        "api_url": "https://api.deepseek.com/chat/completions"
    },
    "gemini": {
        "api_key": API_KEY_PLACEHOLDER,
        "models": ["gemini-2.5-flash"],
        "max_retries": 3,
        "timeout": 120,
        "api_url": "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions"
    },
    "translation": {
        "source_language": DEFAULT_SOURCE_LANGUAGE,
        "chunk_size": DEFAULT_CHUNK_SIZE,
        "chunk_delay": DEFAULT_CHUNK_DELAY,
        "preserve_formatting": True,
        "tone": "neutral",
        "context": ""
    },
    "parser": {
        "visible_attributes": ["title", "alt", "placeholder", "aria*"],
        "exclude_tags": ["script", "style"],
        "skip_patterns": []
    },
    "storage": {
        "memory_dir": DEFAULT_MEMORY_DIR,
        "glossary_path": DEFAULT_GLOSSARY_PATH,
        "memory_autosave_every": MEMORY_AUTOSAVE_EVERY
    },
    "log_mode": "info"
}


def get_config_path() -> Path:
    """Config file location, overridable through POLYGOT_CONFIG."""
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return CONFIG_FILE


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overrides into a copy of base, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def create_default_config(path: Optional[Path] = None) -> Path:
    """Create the default config.json file."""
    from polygot.project.generator import atomic_write_json

    config_path = path or get_config_path()
    atomic_write_json(config_path, DEFAULT_CONFIG)
    logger.info(f"Created default config file: {config_path}")
    return config_path


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the configuration (default location unless path is given), merged over the defaults."""
    config_path = Path(path) if path is not None else get_config_path()
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse config file {config_path}: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)
    except OSError as e:
        logger.error(f"Failed to read config file {config_path}: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(user_config, dict):
        logger.warning(f"Config file {config_path} is not a JSON object, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    logger.debug(f"Configuration loaded from {config_path}")
    return _deep_merge(DEFAULT_CONFIG, user_config)


def save_config(config: Dict[str, Any]):
    """Save the configuration file."""
    from polygot.logger import _clear_log_mode_cache
    from polygot.project.generator import atomic_write_json

    config_path = get_config_path()
    try:
        atomic_write_json(config_path, config)
        logger.info(f"Configuration saved to {config_path}")
    except Exception as e:
        logger.error(f"Failed to save config: {e}")
        raise

    _clear_log_mode_cache()


def load_prompts() -> Dict[str, Any]:
    """Load the prompts from default configuration.

    Note: Prompts are hardcoded in the codebase and are not read from config.json.
    """
    return copy.deepcopy(DEFAULT_PROMPTS)


def get_prompt(prompt_name: str = "chunk_translation_prompt") -> Dict[str, Any]:
    """Get a specific prompt by name."""
    prompts = load_prompts()
    return prompts.get(prompt_name, DEFAULT_PROMPTS["chunk_translation_prompt"])


def resolve_api_key(explicit_key: Optional[str] = None, config: Optional[Dict[str, Any]] = None,
                    provider: Optional[str] = None) -> Optional[str]:
    """
    Resolve the API key for a provider.

    Priority:
    1. explicit_key (if set)
    2. <PROVIDER>_API_KEY environment variable
    3. 'api_key' in the provider config, unless it is the placeholder
    """
    if explicit_key:
        return explicit_key

    config = config if config is not None else load_config()
    provider = provider or config.get('ai_provider', 'openai')

    env_key = os.environ.get(f"{provider.upper().replace('-', '_')}_API_KEY")
    if env_key:
        return env_key

    api_key = config.get(provider, {}).get('api_key', '')
    if api_key and api_key != API_KEY_PLACEHOLDER:
        return api_key

    return None
