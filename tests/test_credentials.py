"""Tests for credential providers and the settings-based factory."""

import os
import stat

import pytest

from config.settings import ProviderConfig, Settings, StoreConfig
from context_agent.credentials import FileCredentialProvider, MemoryCredentialProvider
from context_agent.errors import NoCredentialError, StoreFormatError
from context_agent.rag_pipeline import create_rag_system


def test_memory_provider():
    provider = MemoryCredentialProvider()
    assert provider.get() is None
    with pytest.raises(NoCredentialError):
        provider.require()

    provider.set("sk-1")
    assert provider.require() == "sk-1"

    provider.set("")
    assert provider.get() is None


def test_file_provider_persists_between_instances(tmp_path):
    path = tmp_path / "secrets" / "credentials.json"

    FileCredentialProvider(str(path)).set("sk-file")

    assert FileCredentialProvider(str(path)).get() == "sk-file"
    if os.name == "posix":
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_file_provider_without_file_has_no_credential(tmp_path):
    provider = FileCredentialProvider(str(tmp_path / "none.json"))
    assert provider.get() is None
    with pytest.raises(NoCredentialError):
        provider.require()


def test_corrupt_credential_file_raises_format_error(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{truncated", encoding="utf-8")

    with pytest.raises(StoreFormatError, match="Credential file"):
        FileCredentialProvider(str(path)).get()


def test_factory_seeds_credential_file_from_environment_key(tmp_path):
    settings = Settings(
        provider=ProviderConfig(api_key="sk-env"),
        store=StoreConfig(
            path=str(tmp_path / "store.json"),
            credential_path=str(tmp_path / "cred.json"),
        ),
    )

    pipeline = create_rag_system(settings)

    assert isinstance(pipeline.credentials, FileCredentialProvider)
    assert pipeline.credentials.get() == "sk-env"
    assert pipeline.vector_store.max_entries == 500


def test_factory_keeps_key_in_memory_without_credential_path(tmp_path):
    settings = Settings(
        provider=ProviderConfig(api_key="sk-env"),
        store=StoreConfig(path=str(tmp_path / "store.json")),
    )

    pipeline = create_rag_system(settings)

    assert isinstance(pipeline.credentials, MemoryCredentialProvider)
    assert pipeline.credentials.get() == "sk-env"
