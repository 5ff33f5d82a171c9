from __future__ import annotations

import pytest

from index_committer.clients.base import UpdateRequest
from index_committer.credentials import (
    attach_credentials,
    decrypt_password,
    encrypt_password,
    resolve_key,
)
from index_committer.errors import ConfigurationError
from index_committer.schemas import Credentials, EncryptionKey, KeySource


def test_attach_is_noop_when_username_unset():
    update = UpdateRequest()

    result = attach_credentials(update, Credentials(username="", password="secret"))

    assert result is update
    assert update.basic_auth is None


def test_attach_is_noop_without_credentials():
    update = UpdateRequest()
    attach_credentials(update, None)
    assert update.basic_auth is None


def test_attach_plain_password():
    update = UpdateRequest()

    attach_credentials(update, Credentials(username="solr", password="SolrRocks"))

    assert update.basic_auth == ("solr", "SolrRocks")


def test_encrypted_password_with_literal_key_round_trips():
    key = EncryptionKey(value="my-secret-key", source=KeySource.KEY)
    token = encrypt_password("SolrRocks", key)
    assert token != "SolrRocks"

    update = UpdateRequest()
    attach_credentials(
        update, Credentials(username="solr", password=token, password_key=key)
    )

    assert update.basic_auth == ("solr", "SolrRocks")


def test_key_from_file(tmp_path):
    key_file = tmp_path / "committer.key"
    key_file.write_text("file-key\n", encoding="utf-8")
    key = EncryptionKey(value=str(key_file), source=KeySource.FILE)

    assert resolve_key(key) == "file-key"
    token = encrypt_password("pw", EncryptionKey(value="file-key"))
    assert decrypt_password(
        Credentials(username="u", password=token, password_key=key)
    ) == "pw"


def test_key_from_environment(monkeypatch):
    monkeypatch.setenv("COMMITTER_TEST_KEY", "env-key")
    key = EncryptionKey(value="COMMITTER_TEST_KEY", source=KeySource.ENVIRONMENT)

    token = encrypt_password("pw", key)

    assert decrypt_password(
        Credentials(username="u", password=token, password_key=key)
    ) == "pw"


def test_key_from_properties():
    key = EncryptionKey(value="committer.key", source=KeySource.PROPERTY)
    properties = {"committer.key": "prop-key"}

    token = encrypt_password("pw", key, properties)
    credentials = Credentials(username="u", password=token, password_key=key)

    assert decrypt_password(credentials, properties) == "pw"
    with pytest.raises(ConfigurationError, match="property"):
        decrypt_password(credentials)


def test_missing_environment_key_is_configuration_error(monkeypatch):
    monkeypatch.delenv("COMMITTER_MISSING_KEY", raising=False)
    key = EncryptionKey(value="COMMITTER_MISSING_KEY", source=KeySource.ENVIRONMENT)

    with pytest.raises(ConfigurationError, match="COMMITTER_MISSING_KEY"):
        attach_credentials(
            UpdateRequest(),
            Credentials(username="u", password="x", password_key=key),
        )


def test_missing_key_file_is_configuration_error(tmp_path):
    key = EncryptionKey(value=str(tmp_path / "nope.key"), source=KeySource.FILE)

    with pytest.raises(ConfigurationError):
        resolve_key(key)


def test_wrong_key_is_configuration_error():
    token = encrypt_password("pw", EncryptionKey(value="right"))
    credentials = Credentials(
        username="u", password=token, password_key=EncryptionKey(value="wrong")
    )

    with pytest.raises(ConfigurationError, match="decrypt"):
        decrypt_password(credentials)


def test_credentials_repr_hides_password():
    credentials = Credentials(username="solr", password="SolrRocks")

    assert "SolrRocks" not in repr(credentials)
    assert "SolrRocks" not in str(credentials)
