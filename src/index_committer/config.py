from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import ConfigurationError
from .schemas import Credentials, EncryptionKey, FieldMapping, KeySource


def _env_bool(name: str, default: str = "0") -> bool:
    value = os.getenv(name, default)
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    client_type: str = os.getenv("COMMITTER_CLIENT_TYPE", "http")
    url: str = os.getenv("COMMITTER_URL", "")
    commit_disabled: bool = _env_bool("COMMITTER_COMMIT_DISABLED", "0")
    update_url_params: str = os.getenv("COMMITTER_UPDATE_URL_PARAMS", "")
    username: str = os.getenv("COMMITTER_USERNAME", "")
    password: str = os.getenv("COMMITTER_PASSWORD", "")
    password_key: str = os.getenv("COMMITTER_PASSWORD_KEY", "")
    password_key_source: str = os.getenv("COMMITTER_PASSWORD_KEY_SOURCE", "key")
    source_reference_field: str = os.getenv("COMMITTER_SOURCE_REFERENCE_FIELD", "")
    keep_source_reference_field: bool = _env_bool(
        "COMMITTER_KEEP_SOURCE_REFERENCE_FIELD", "0"
    )
    target_reference_field: str = os.getenv("COMMITTER_TARGET_REFERENCE_FIELD", "id")
    source_content_field: str = os.getenv("COMMITTER_SOURCE_CONTENT_FIELD", "")
    keep_source_content_field: bool = _env_bool(
        "COMMITTER_KEEP_SOURCE_CONTENT_FIELD", "0"
    )
    target_content_field: str = os.getenv(
        "COMMITTER_TARGET_CONTENT_FIELD", "content"
    )
    commit_batch_size: int = int(os.getenv("COMMITTER_COMMIT_BATCH_SIZE", "20"))
    timeout_seconds: float = float(os.getenv("COMMITTER_TIMEOUT_SECONDS", "60"))
    verify_tls: bool = _env_bool("COMMITTER_VERIFY_TLS", "1")

    # ── Streaming (concurrent update) client ─────────────────
    queue_size: int = int(os.getenv("COMMITTER_QUEUE_SIZE", "10"))
    thread_count: int = int(os.getenv("COMMITTER_THREAD_COUNT", "2"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def url_list(self) -> List[str]:
        return [url.strip() for url in self.url.split(",") if url.strip()]

    @property
    def update_url_params_map(self) -> Dict[str, str]:
        """Parse ``name=value,name2=value2`` into an ordered mapping."""
        params: Dict[str, str] = {}
        for item in self.update_url_params.split(","):
            item = item.strip()
            if not item or "=" not in item:
                continue
            name, value = item.split("=", 1)
            name = name.strip()
            if name:
                params[name] = value.strip()
        return params

    @property
    def credentials(self) -> Credentials:
        key: Optional[EncryptionKey] = None
        if self.password_key:
            key = EncryptionKey(
                value=self.password_key,
                source=KeySource(self.password_key_source.strip().lower()),
            )
        return Credentials(
            username=self.username,
            password=self.password,
            password_key=key,
        )

    @property
    def reference_mapping(self) -> FieldMapping:
        return FieldMapping(
            source_field=self.source_reference_field or None,
            target_field=self.target_reference_field,
            keep_source=self.keep_source_reference_field,
        )

    @property
    def content_mapping(self) -> FieldMapping:
        return FieldMapping(
            source_field=self.source_content_field or None,
            target_field=self.target_content_field,
            keep_source=self.keep_source_content_field,
        )


def get_settings() -> Settings:
    return Settings()


def validate_settings(settings: Settings) -> None:
    if not settings.url.strip():
        raise ConfigurationError("COMMITTER_URL must be set")
    if settings.commit_batch_size < 1:
        raise ConfigurationError("COMMITTER_COMMIT_BATCH_SIZE must be >= 1")
    if settings.timeout_seconds <= 0:
        raise ConfigurationError("COMMITTER_TIMEOUT_SECONDS must be > 0")
    if settings.queue_size < 1:
        raise ConfigurationError("COMMITTER_QUEUE_SIZE must be >= 1")
    if settings.thread_count < 1:
        raise ConfigurationError("COMMITTER_THREAD_COUNT must be >= 1")
    if not settings.target_reference_field.strip():
        raise ConfigurationError("COMMITTER_TARGET_REFERENCE_FIELD must not be blank")
    if not settings.target_content_field.strip():
        raise ConfigurationError("COMMITTER_TARGET_CONTENT_FIELD must not be blank")
    valid_sources = {source.value for source in KeySource}
    if (
        settings.password_key
        and settings.password_key_source.strip().lower() not in valid_sources
    ):
        raise ConfigurationError(
            "COMMITTER_PASSWORD_KEY_SOURCE must be one of: "
            + ", ".join(sorted(valid_sources))
        )
