import pytest

from otp_tool.config_parser import parse_config, parse_line
from otp_tool.errors import (
    ConfigSyntaxError,
    InvalidParameterError,
    InvalidURLError,
    MalformedLineError,
    UnknownParameterError,
)
from otp_tool.otpauth_url import Account


def test_parse_shorthand_and_urls(testdata):
    accounts = parse_config((testdata / "plaintext.csv").read_bytes())
    assert [a.account for a in accounts] == ["example", "alice@example.com", "bob"]
    assert accounts[0] == Account(account="example", raw_secret="ABCDEFGH")
    assert accounts[1].issuer == "Example"
    assert (accounts[2].algorithm, accounts[2].digits, accounts[2].period) == ("SHA256", 8, 60)


def test_parse_accepts_str_and_trims():
    accounts = parse_config("  github :  JBSW Y3DP  \n\n   \n")
    assert accounts == [Account(account="github", raw_secret="JBSW Y3DP")]


def test_parse_splits_on_first_colon_only():
    assert parse_line("site:ABC:DEF", 1).raw_secret == "ABC:DEF"


def test_parse_keeps_order_and_duplicates():
    accounts = parse_config(b"b:AAAA\na:BBBB\nb:CCCC\n")
    assert [(a.account, a.raw_secret) for a in accounts] == [("b", "AAAA"), ("a", "BBBB"), ("b", "CCCC")]


def test_parse_empty_config():
    assert parse_config(b"") == []
    assert parse_config(b"\n\n") == []


def test_malformed_line_reports_line_number_counting_blank_lines():
    with pytest.raises(MalformedLineError) as excinfo:
        parse_config(b"a:AAAA\n\n\nnot-a-valid-line\nb:BBBB\n")
    assert excinfo.value.line == 4
    assert str(excinfo.value) == "line 4: invalid format (want name:secret)"


def test_empty_name_is_malformed():
    with pytest.raises(MalformedLineError):
        parse_config(b":AAAA\n")


def test_url_error_keeps_type_and_gets_line_number():
    with pytest.raises(UnknownParameterError) as excinfo:
        parse_config(b"a:AAAA\notpauth://totp/alice?foo=1\n")
    assert excinfo.value.line == 2
    assert str(excinfo.value) == "line 2: invalid otpauth URL: invalid parameter 'foo'"
    assert isinstance(excinfo.value.__cause__, InvalidURLError)


def test_digits_above_ten_rejected_with_line_number():
    with pytest.raises(InvalidParameterError) as excinfo:
        parse_config(b"otpauth://totp/a?secret=ABCDEFGH&digits=100000000\n")
    assert excinfo.value.line == 1


def test_non_utf8_config():
    with pytest.raises(ConfigSyntaxError):
        parse_config(b"\xff\xfe:AAAA\n")
