import pytest

from otp_tool import otp_cli
from otp_tool.errors import InvalidSecretError
from otp_tool.otp_core import codes
from otp_tool.otpauth_url import Account
from otp_tool.session import CONFIG_ENV_VAR

EXAMPLE = Account(account="example", raw_secret="ABCDEFGH")


@pytest.fixture()
def plain_env(monkeypatch, plain_config):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(plain_config))
    return plain_config


@pytest.fixture()
def frozen_time(monkeypatch):
    # 1553712630 falls in time step 51790421, 0 seconds into it.
    monkeypatch.setattr("otp_tool.otp_core.time.time", lambda: 1553712630.0)


def _answers(monkeypatch, *answers):
    it = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(it))


def test_format_table_and_progress_bar():
    table = otp_cli.format_table([("example", "111111", "222222", "333333"), ("b", "1", "2", "3")])
    assert table.splitlines() == [
        "        prev   curr   next",
        "example 111111 222222 333333",
        "b       1      2      3",
    ]
    assert otp_cli.progress_bar(3) == "[===" + " " * 26 + "]"


def test_list_all(plain_env, frozen_time, capsys):
    assert otp_cli.main([]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].split() == ["prev", "curr", "next"]
    assert out[1].split()[0] == "example"
    assert out[1].split()[2] == "305441"
    assert [line.split()[0] for line in out[1:4]] == ["example", "alice@example.com", "bob"]
    assert out[4] == "[" + " " * 29 + "]"


def test_list_filtered(plain_env, frozen_time, capsys):
    assert otp_cli.main(["EXAMPLE"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 3
    assert out[1].split() == ["example", *codes(EXAMPLE, 1553712630)]


def test_bare(plain_env, frozen_time, capsys):
    assert otp_cli.main(["example", "-b"]) == 0
    assert capsys.readouterr().out == "305441\n"


def test_secret_and_uri(plain_env, capsys):
    assert otp_cli.main(["bob", "--secret"]) == 0
    assert capsys.readouterr().out == "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ\n"

    assert otp_cli.main(["bob", "--uri"]) == 0
    assert capsys.readouterr().out == (
        "otpauth://totp/Bank:bob?algorithm=SHA256&digits=8&issuer=Bank&period=60"
        "&secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ\n"
    )


def test_unknown_account_is_an_error(plain_env, capsys):
    assert otp_cli.main(["carol", "-b"]) == 1
    assert "[!] account 'carol' not found" in capsys.readouterr().err


def test_action_requires_account(plain_env):
    with pytest.raises(SystemExit) as excinfo:
        otp_cli.main(["--bare"])
    assert excinfo.value.code == 2


def test_actions_are_exclusive(plain_env):
    with pytest.raises(SystemExit):
        otp_cli.main(["example", "-b", "-s"])


def test_add(plain_env, frozen_time, monkeypatch, capsys):
    _answers(monkeypatch, "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ")
    assert otp_cli.main(["carol", "--add"]) == 0
    assert capsys.readouterr().out.startswith("Current OTP for carol: ")
    assert plain_env.read_text().endswith("carol:GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ\n")


def test_add_duplicate(plain_env, monkeypatch, capsys):
    _answers(monkeypatch, "GEZDGNBV")
    assert otp_cli.main(["example", "--add"]) == 1
    assert "already exists" in capsys.readouterr().err


def test_remove_confirmed(plain_env, monkeypatch, capsys):
    _answers(monkeypatch, "y")
    assert otp_cli.main(["bob", "-r"]) == 0
    assert "bob has been removed." in capsys.readouterr().out
    assert "bob" not in plain_env.read_text()


def test_remove_declined(plain_env, monkeypatch, capsys):
    before = plain_env.read_text()
    _answers(monkeypatch, "n")
    assert otp_cli.main(["bob", "-r"]) == 0
    assert plain_env.read_text() == before


def test_encrypted_config_prompts_for_password(monkeypatch, encrypted_config, frozen_time, capsys):
    prompts = []

    def fake_getpass(prompt):
        prompts.append(prompt)
        return "x"

    monkeypatch.setattr(otp_cli.getpass, "getpass", fake_getpass)
    assert otp_cli.main(["example", "-b", "--config", str(encrypted_config)]) == 0
    assert capsys.readouterr().out == "305441\n"
    assert prompts == ["Encryption password: "]


def test_bad_line_aborts_listing(tmp_path, monkeypatch, capsys):
    path = tmp_path / "gauth.csv"
    path.write_text("a:ABCDEFGH\n\nbroken\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert otp_cli.main([]) == 1
    assert "[!] line 3: invalid format" in capsys.readouterr().err


def test_bad_secret_aborts_listing(tmp_path, monkeypatch, capsys):
    path = tmp_path / "gauth.csv"
    path.write_text("a:ABCDEFGH\nb:blargh!\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert otp_cli.main([]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "invalid secret" in captured.err
    assert "generating codes for 'b'" in captured.err


def test_bare_error_names_the_account(tmp_path, monkeypatch, capsys):
    path = tmp_path / "gauth.csv"
    path.write_text("otpauth://totp/badalgo?algorithm=MD5&secret=ABCDEFGH\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert otp_cli.main(["badalgo", "-b"]) == 1
    err = capsys.readouterr().err
    assert "badalgo" in err
    assert "unsupported algorithm" in err


def test_account_codes_keeps_error_type():
    with pytest.raises(InvalidSecretError, match="badacct"):
        otp_cli.account_codes(Account(account="badacct", raw_secret="blargh!"))


def test_missing_config(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.csv"))
    assert otp_cli.main([]) == 1
    assert "config file not found" in capsys.readouterr().err
