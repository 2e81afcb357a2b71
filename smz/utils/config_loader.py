import logging
import os

import yaml
from dotenv import load_dotenv

from smz.config import EngineConfig

logger = logging.getLogger("SMZ.Config")


def load_config(config_path="config.yaml"):
    """
    Loads the runner configuration from a YAML file.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise


def load_engine_config(config: dict) -> EngineConfig:
    """Builds the typed engine tunables from the `engine:` section."""
    return EngineConfig.from_dict(config.get("engine") or {})


def load_credentials(env_path=".env"):
    """
    Loads Telegram credentials from a specific .env file.
    """
    load_dotenv(env_path)

    token = os.getenv("TELEGRAM_TOKEN")
    chat_id = os.getenv("TELEGRAM_CHAT_ID")
    if not all([token, chat_id]):
        logger.warning("Telegram credentials not fully set in .env")

    return {
        "telegram_token": token,
        "telegram_chat_id": chat_id,
    }
