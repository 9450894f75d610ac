from cashmais.storage.db import Database
from cashmais.storage.security import (
    REFERRAL_CODE_ALPHABET,
    generate_referral_code,
    generate_session_token,
    hash_password,
    verify_password,
)


class _DummyConnection:
    def execute(self, _statement):
        return 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        del exc_type, exc, tb
        return False


class _DummyEngine:
    def connect(self):
        return _DummyConnection()


class _FailingEngine:
    def connect(self):
        raise RuntimeError("db down")


def test_db_connection_success() -> None:
    database = Database("postgresql+psycopg2://app:password@db:5432/cashmais")
    database.__dict__["engine"] = _DummyEngine()

    ok, error = database.test_connection()
    assert ok is True
    assert error is None


def test_db_connection_failure() -> None:
    database = Database("postgresql+psycopg2://app:password@db:5432/cashmais")
    database.__dict__["engine"] = _FailingEngine()

    ok, error = database.test_connection()
    assert ok is False
    assert error == "db down"


def test_sqlite_database_round_trip() -> None:
    database = Database("sqlite+pysqlite://")

    ok, error = database.test_connection()
    assert ok is True
    assert error is None
    database.dispose()


def test_password_hashing() -> None:
    encoded = hash_password("s3cret!")

    assert encoded.startswith("pbkdf2_sha256$")
    assert verify_password("s3cret!", encoded) is True
    assert verify_password("wrong", encoded) is False
    assert verify_password("s3cret!", "not-a-hash") is False


def test_generated_tokens_are_hex_and_unique() -> None:
    tokens = {generate_session_token() for _ in range(20)}

    assert len(tokens) == 20
    assert all(len(token) == 64 and int(token, 16) >= 0 for token in tokens)
    code = generate_referral_code()
    assert len(code) == 8
    assert all(char in REFERRAL_CODE_ALPHABET for char in code)
