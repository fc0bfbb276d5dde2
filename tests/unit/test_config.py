"""
Unit tests for configuration loading and input validation.
"""

import json
import logging
from pathlib import Path

import pytest

from nftledger.core.config import LedgerConfig, load_config
from nftledger.core.errors import IncorrectOwner, LedgerError, NonexistentToken
from nftledger.utils.validation import (
    MAX_TOKEN_ID,
    validate_address,
    validate_interface_id,
    validate_namespace,
    validate_token_id,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from NFTLEDGER_* variables and any .env in the working directory."""
    for name in ("NAMESPACE", "DB_NAME", "DATA_DIR", "LOG_DIR", "LOG_LEVEL", "LOG_TO_FILE", "STRICT_VALIDATION"):
        monkeypatch.delenv(f"NFTLEDGER_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


class TestConfig:
    """Tests for LedgerConfig and load_config."""

    def test_defaults(self):
        config = load_config()
        assert config.namespace == "erc721"
        assert config.db_path == Path("data") / "ledger.db"
        assert config.strict_validation is False
        assert config.level == logging.INFO

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "namespace": "art",
            "strict_validation": True,
            "data_dir": str(tmp_path / "state"),
            "log_level": "debug",
        }))

        config = load_config(str(path))

        assert config.namespace == "art"
        assert config.strict_validation is True
        assert config.data_dir == tmp_path / "state"
        assert config.level == logging.DEBUG

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"nmespace": "typo"}))

        with pytest.raises(ValueError, match="nmespace"):
            load_config(str(path))

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"namespace": "from_file"}))
        monkeypatch.setenv("NFTLEDGER_NAMESPACE", "from_env")
        monkeypatch.setenv("NFTLEDGER_STRICT_VALIDATION", "yes")

        config = load_config(str(path))

        assert config.namespace == "from_env"
        assert config.strict_validation is True

    def test_bad_bool_rejected(self, monkeypatch):
        monkeypatch.setenv("NFTLEDGER_STRICT_VALIDATION", "maybe")
        with pytest.raises(ValueError):
            load_config()

    def test_bad_log_level_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(log_level="LOUD")

    def test_ensure_dirs(self, tmp_path):
        config = LedgerConfig(data_dir=tmp_path / "a" / "b")
        config.ensure_dirs()
        assert config.data_dir.is_dir()


class TestValidation:
    """Tests for validators."""

    def test_token_id_bounds(self):
        assert validate_token_id(0)[0]
        assert validate_token_id(MAX_TOKEN_ID)[0]
        assert not validate_token_id(-1)[0]
        assert not validate_token_id(MAX_TOKEN_ID + 1)[0]

    def test_token_id_rejects_bool(self):
        valid, err = validate_token_id(True)
        assert not valid
        assert "bool" in err

    def test_address(self):
        assert validate_address("0x" + "ab" * 20)[0]
        assert validate_address(bytes(20))[0]
        valid, err = validate_address("0x1234", "owner")
        assert not valid
        assert "owner" in err

    def test_namespace(self):
        assert validate_namespace("erc721")[0]
        assert not validate_namespace("a:b")[0]

    def test_interface_id(self):
        assert validate_interface_id(0x80AC58CD)[0]
        assert validate_interface_id(b"\x80\xac\x58\xcd")[0]
        assert not validate_interface_id(2**32)[0]


class TestErrors:
    """Tests for structured errors."""

    def test_message_and_attributes(self):
        error = IncorrectOwner(sender="0xaa", token_id=7, owner="0xbb")

        assert error.sender == "0xaa"
        assert error.token_id == 7
        assert error.owner == "0xbb"
        assert error.kwargs == {"sender": "0xaa", "token_id": 7, "owner": "0xbb"}
        assert "7" in str(error)
        assert isinstance(error, LedgerError)

    def test_equality(self):
        assert NonexistentToken(token_id=1) == NonexistentToken(token_id=1)
        assert NonexistentToken(token_id=1) != NonexistentToken(token_id=2)

    def test_pickle(self):
        import pickle

        error = NonexistentToken(token_id=9)
        assert pickle.loads(pickle.dumps(error)) == error


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
