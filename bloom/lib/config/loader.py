"""
Settings loader

Builds BloomSettings from environment variables (.env is loaded first).
Per-instance values use the instance number: bot2 reads SESSION_2,
LOGS_CHAT_2, BOT2_PRIORITY and BOT2_ROTATION_HOURS.
"""

import logging
import os
import re
from datetime import timedelta
from typing import Dict, List, Mapping, Optional
from dotenv import load_dotenv
from pydantic import ValidationError

from bloom.errors import ConfigurationError
from .settings_models import (
    InstanceDescriptor, StartupSettings, RotationSettings, ReconnectSettings,
    NotificationSettings, ServerSettings, BloomSettings
)

DEFAULT_INSTANCES = "bot1,bot2,bot3"
DEFAULT_ROTATION_HOURS = 8.0

logger = logging.getLogger("bloom.config")


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _instance_index(instance_id: str, position: int) -> str:
    """bot3 -> '3'; ids without a trailing number fall back to their 1-based position"""
    match = re.search(r'(\d+)$', instance_id)
    return match.group(1) if match else str(position)


def get_instance_descriptors(env: Optional[Mapping[str, str]] = None) -> List[InstanceDescriptor]:
    """
    Build instance descriptors from the environment

    Args:
        env: Mapping to read from (defaults to os.environ)

    An instance with invalid values is logged and skipped; the others
    still load.

    Returns:
        Descriptors in declaration order (the registry sorts them by priority)

    Raises:
        ConfigurationError: If no instance has a valid configuration
    """
    env = os.environ if env is None else env
    raw_ids = env.get("BLOOM_INSTANCES") or DEFAULT_INSTANCES
    instance_ids = [i.strip() for i in raw_ids.split(",") if i.strip()]
    shared_logs_chat = env.get("LOGS_CHAT", "")

    descriptors = []
    for position, instance_id in enumerate(instance_ids, start=1):
        index = _instance_index(instance_id, position)
        try:
            descriptors.append(InstanceDescriptor(
                id=instance_id,
                priority=_env_int(env, f"BOT{index}_PRIORITY", int(index)),
                rotation_period=timedelta(hours=_env_float(env, f"BOT{index}_ROTATION_HOURS", DEFAULT_ROTATION_HOURS)),
                credential_source=env.get(f"SESSION_{index}", ""),
                session_dir=env.get(f"SESSION_DIR_{index}", f"heart_{instance_id}"),
                logs_chat=env.get(f"LOGS_CHAT_{index}", "") or shared_logs_chat,
            ))
        except (ValidationError, ConfigurationError) as e:
            logger.error(f"❌ [CONFIG] Skipping instance {instance_id}, invalid configuration: {e}")

    if not descriptors:
        raise ConfigurationError(f"No valid instance configuration in {', '.join(instance_ids) or 'BLOOM_INSTANCES'}")
    return descriptors


def _database_url(env: Mapping[str, str]) -> str:
    url = env.get("DATABASE_URL") or "sqlite+aiosqlite:///bloom.db"
    # Convert sync postgresql:// to async postgresql+asyncpg://
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def get_bloom_settings(env: Optional[Mapping[str, str]] = None) -> BloomSettings:
    """
    Load the complete Bloom configuration

    Reads .env (when reading the real environment) and validates everything
    up front so a bad deployment fails before any instance connects.

    Raises:
        ConfigurationError: If any value is missing or invalid
    """
    if env is None:
        load_dotenv()
        env = os.environ

    owner_numbers = [n.strip() for n in env.get("OWNERNUMBER", "").split(",") if n.strip()]

    try:
        return BloomSettings(
            instances=get_instance_descriptors(env),
            database_url=_database_url(env),
            sessions_root=env.get("SESSIONS_ROOT", "."),
            prefix=env.get("PREFIX", "!"),
            owner_jids=[f"{number}@s.whatsapp.net" for number in owner_numbers],
            driver_path=env.get("BLOOM_DRIVER") or None,
            startup=StartupSettings(
                sequential_start=_env_bool(env, "STARTUP_SEQUENTIAL", True),
                connect_timeout=_env_float(env, "STARTUP_TIMEOUT", 120.0),
                inter_instance_delay=_env_float(env, "STARTUP_DELAY", 1.0),
                session_paste_url=env.get("SESSION_PASTE_URL", "https://pastebin.com/raw"),
            ),
            rotation=RotationSettings(
                enabled=_env_bool(env, "ROTATION_ENABLED", True),
                primary_instance_id=env.get("PRIMARY_INSTANCE") or None,
            ),
            reconnect=ReconnectSettings(
                base_delay=_env_float(env, "RECONNECT_BASE_DELAY", 5.0),
                max_delay=_env_float(env, "RECONNECT_MAX_DELAY", 300.0),
                max_retries=_env_int(env, "RECONNECT_MAX_RETRIES", 10),
            ),
            notifications=NotificationSettings(
                enabled=_env_bool(env, "NOTIFICATIONS_ENABLED", True),
                bot_name=env.get("BOT_NAME", "Bloom"),
                emoji=env.get("BOT_EMOJI", "🌸"),
            ),
            server=ServerSettings(
                port=_env_int(env, "PORT", 3000),
                enabled=_env_bool(env, "STATUS_SERVER_ENABLED", True),
            ),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid Bloom configuration: {e}")


def describe_settings(settings: BloomSettings) -> Dict[str, str]:
    """Human-readable summary for the startup banner (no secrets)"""
    return {
        "instances": ", ".join(f"{i.id}(p{i.priority}, {i.rotation_hours:g}h)" for i in settings.instances),
        "database": settings.database_url.split("@")[-1],
        "sequential_start": str(settings.startup.sequential_start),
        "rotation": "enabled" if settings.rotation.enabled else "disabled",
    }
