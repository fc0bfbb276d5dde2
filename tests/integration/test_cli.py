"""
Integration tests for the command line interface.

Each invocation opens the database under a temporary data directory,
so consecutive commands exercise persistence as well.
"""

import pytest
from click.testing import CliRunner

from nftledger.cli.main import cli
from nftledger.crypto import to_checksum_address

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


@pytest.fixture
def run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--data-dir", str(tmp_path / "data"), *args])

    return _run


@pytest.fixture
def initialized(run):
    result = run("init", "--name", "Art", "--symbol", "ART", "--owner", ADMIN)
    assert result.exit_code == 0, result.output
    return run


class TestCollectionCommands:
    """Tests for init and info."""

    def test_init(self, run, tmp_path):
        result = run("init", "--name", "Art", "--symbol", "ART", "--owner", ADMIN)

        assert result.exit_code == 0, result.output
        assert "Collection created: Art (ART)" in result.output
        assert to_checksum_address(ADMIN) in result.output
        assert (tmp_path / "data" / "ledger.db").exists()

    def test_init_twice_fails(self, initialized):
        result = initialized("init", "--name", "Other", "--symbol", "OTH", "--owner", ALICE)

        assert result.exit_code == 1
        assert "AlreadyInitialized" in result.output

    def test_commands_need_a_collection(self, run):
        result = run("owner-of", "1")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_info(self, initialized):
        initialized("mint", "--caller", ADMIN, "--to", ALICE, "--token-id", "1")

        result = initialized("info")

        assert result.exit_code == 0, result.output
        assert "token_count: 1" in result.output
        assert "name: Art" in result.output


class TestTokenCommands:
    """Tests for mint, transfer, approve and burn."""

    def test_mint_and_query(self, initialized):
        result = initialized("mint", "--caller", ADMIN, "--to", ALICE, "--token-id", "1")
        assert result.exit_code == 0, result.output

        result = initialized("owner-of", "1")
        assert to_checksum_address(ALICE) in result.output

        result = initialized("balance-of", ALICE)
        assert "1" in result.output.splitlines()

    def test_mint_requires_collection_owner(self, initialized):
        result = initialized("mint", "--caller", ALICE, "--to", ALICE, "--token-id", "1")

        assert result.exit_code == 1
        assert "NotAuthorized" in result.output

    def test_approve_then_transfer(self, initialized):
        initialized("mint", "--caller", ADMIN, "--to", ALICE, "--token-id", "1")

        result = initialized("approve", "--caller", ALICE, "--to", BOB, "--token-id", "1")
        assert result.exit_code == 0, result.output
        assert to_checksum_address(BOB) in initialized("get-approved", "1").output

        result = initialized("transfer", "--caller", BOB, "--from", ALICE, "--to", BOB, "--token-id", "1")
        assert result.exit_code == 0, result.output
        assert to_checksum_address(BOB) in initialized("owner-of", "1").output
        assert "null" in initialized("get-approved", "1").output

    def test_unauthorized_transfer(self, initialized):
        initialized("mint", "--caller", ADMIN, "--to", ALICE, "--token-id", "1")

        result = initialized("transfer", "--caller", BOB, "--from", ALICE, "--to", BOB, "--token-id", "1")

        assert result.exit_code == 1
        assert "InsufficientApproval" in result.output
        assert to_checksum_address(ALICE) in initialized("owner-of", "1").output

    def test_operator_flags(self, initialized):
        result = initialized("approve-all", "--caller", ALICE, "--operator", BOB)
        assert result.exit_code == 0, result.output
        assert "true" in initialized("is-approved-for-all", ALICE, BOB).output

        initialized("approve-all", "--caller", ALICE, "--operator", BOB, "--revoke")
        assert "false" in initialized("is-approved-for-all", ALICE, BOB).output

    def test_burn(self, initialized):
        initialized("mint", "--caller", ADMIN, "--to", ALICE, "--token-id", "1")

        result = initialized("burn", "--caller", ADMIN, "--token-id", "1")
        assert result.exit_code == 0, result.output

        result = initialized("owner-of", "1")
        assert result.exit_code == 1
        assert "NonexistentToken" in result.output

    def test_bad_address(self, initialized):
        result = initialized("balance-of", "0x1234")

        assert result.exit_code == 1
        assert "owner is not a 0x-prefixed" in result.output

    def test_events(self, initialized):
        initialized("mint", "--caller", ADMIN, "--to", ALICE, "--token-id", "1")
        initialized("burn", "--caller", ADMIN, "--token-id", "1")

        result = initialized("events")

        assert result.exit_code == 0, result.output
        assert result.output.count("Transfer(") == 2


class TestDemo:
    def test_demo_runs(self):
        result = CliRunner().invoke(cli, ["demo"])

        assert result.exit_code == 0, result.output
        assert "Demo complete" in result.output
