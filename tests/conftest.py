import pytest

from nftledger.utils.logger import LedgerLogger


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop log handlers bound to streams that a test may close."""
    yield
    LedgerLogger.reset()
