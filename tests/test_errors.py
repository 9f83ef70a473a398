import pytest

from dexquote.core.errors import (
    ConfigurationError, DexQuoteError, ExecutionRevertedError, SimulationFailedError,
    SlippageExceededError, TokenNotFoundError,
)


def test_slippage_exceeded_keeps_both_amounts():
    err = SlippageExceededError("1990", "1985")
    assert (err.expected, err.actual) == ("1990", "1985")
    assert str(err) == "Slippage too high: expected 1990, got 1985"
    assert err.category == "internal"


@pytest.mark.parametrize(
    "err,text,category",
    [
        (SimulationFailedError("STF"), "Simulation failed: STF", "internal"),
        (TokenNotFoundError("NOPE"), "Token not found: NOPE", "invalid_params"),
        (ConfigurationError(), "Configuration error", "invalid_request"),
    ],
)
def test_messages_and_categories(err, text, category):
    assert isinstance(err, DexQuoteError)
    assert str(err) == text
    assert err.category == category


def test_revert_keeps_payload():
    err = ExecutionRevertedError("execution reverted", data="0x08c379a0")
    assert err.data == "0x08c379a0"
    assert err.message == "execution reverted"
