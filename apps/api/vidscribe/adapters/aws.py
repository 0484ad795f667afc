"""Shared boto3 client construction."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


def build_client(service_name: str, *, region: str, timeout_seconds: float) -> Any:
    """Create a boto3 client whose calls are bounded by ``timeout_seconds``."""
    config = Config(
        region_name=region,
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
        retries={"max_attempts": 2, "mode": "standard"},
    )
    return boto3.client(service_name, config=config)


def client_error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def client_error_message(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Message", "")) or str(exc)
