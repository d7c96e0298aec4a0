import os
from typing import Dict, Any, List


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def get_rabbitmq_config() -> Dict[str, Any]:
    """Get RabbitMQ configuration from environment variables"""
    return {
        "host": os.getenv("RABBITMQ_HOST", "localhost"),
        "port": int(os.getenv("RABBITMQ_PORT", 5672)),
        "vhost": os.getenv("RABBITMQ_VHOST", "/"),
        "username": os.getenv("RABBITMQ_USERNAME", "guest"),
        "password": os.getenv("RABBITMQ_PASSWORD", "guest"),
        "queue_name": os.getenv("RABBITMQ_QUEUE", "schedule"),
        "heartbeat": int(os.getenv("RABBITMQ_HEARTBEAT", 600)),
        "connection_attempts": int(os.getenv("RABBITMQ_CONNECTION_ATTEMPTS", 3)),
        "retry_delay": int(os.getenv("RABBITMQ_RETRY_DELAY", 5)),
    }


def get_app_config() -> Dict[str, Any]:
    """Get application configuration from environment variables"""
    return {
        "debug": os.getenv("DEBUG", "False").lower() == "true",
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }


def get_schedule_config() -> Dict[str, Any]:
    """Get weekly grid configuration from environment variables"""
    durations = os.getenv("SCHEDULE_DURATIONS", "30,45,60,90,120,150,180,210,240")
    axes = os.getenv("SCHEDULE_CONFLICT_AXES", "group,classroom")
    return {
        "day_start": os.getenv("SCHEDULE_DAY_START", "08:00"),
        "day_end": os.getenv("SCHEDULE_DAY_END", "23:00"),
        "interval": int(os.getenv("SCHEDULE_GRID_INTERVAL", 30)),
        "durations": [int(d) for d in _split_list(durations)],
        "slot_height_px": int(os.getenv("SCHEDULE_SLOT_HEIGHT_PX", 40)),
        "conflict_axes": _split_list(axes),
    }


def get_storage_config() -> Dict[str, Any]:
    """Get tenant storage configuration from environment variables"""
    return {
        "backend": os.getenv("STORAGE_BACKEND", "memory").lower(),
        "path": os.getenv("STORAGE_PATH", "schools.json"),
    }
