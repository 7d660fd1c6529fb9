import pytest

from chnative.protocol import ClientCode, CompressionState, ErrorCode, ServerCode, Stage


@pytest.mark.parametrize(
    "value, member",
    [
        (0, ServerCode.HELLO),
        (1, ServerCode.DATA),
        (2, ServerCode.EXCEPTION),
        (4, ServerCode.PONG),
        (5, ServerCode.END_OF_STREAM),
        (10, ServerCode.LOG),
        (11, ServerCode.TABLE_COLUMNS),
    ],
)
def test_server_codes_match_wire_values(value, member):
    assert ServerCode(value) is member
    assert int(member) == value


@pytest.mark.parametrize(
    "value, member",
    [
        (0, ClientCode.HELLO),
        (1, ClientCode.QUERY),
        (2, ClientCode.DATA),
        (3, ClientCode.CANCEL),
        (4, ClientCode.PING),
    ],
)
def test_client_codes_match_wire_values(value, member):
    assert ClientCode(value) is member
    assert int(member) == value


def test_compression_state_and_stage():
    assert CompressionState(0) is CompressionState.DISABLE
    assert CompressionState(1) is CompressionState.ENABLE
    assert Stage(2) is Stage.COMPLETE


@pytest.mark.parametrize(
    "value, member",
    [
        (57, ErrorCode.TABLE_ALREADY_EXISTS),
        (60, ErrorCode.UNKNOWN_TABLE),
        (62, ErrorCode.SYNTAX_ERROR),
        (193, ErrorCode.WRONG_PASSWORD),
        (1002, ErrorCode.UNKNOWN_EXCEPTION),
    ],
)
def test_error_code_lookup_by_value(value, member):
    assert ErrorCode(value) is member


def test_unknown_server_code_is_rejected():
    with pytest.raises(ValueError):
        ServerCode(99)


def test_server_code_from_received_integer():
    assert ServerCode(3) is ServerCode.PROGRESS
    assert ServerCode(6) is ServerCode.PROFILE_INFO