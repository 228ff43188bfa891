"""
Tests for password-based key derivation.
"""
import pytest

from pathcrypt.errors import InvalidParameters, UnsupportedAlgorithm
from pathcrypt import key_derivation
from pathcrypt.key_derivation import derive, wipe_buffer


class TestDeterminism:
    def test_identical_arguments_give_identical_keys(self):
        first = derive("p", "s", "pbkdf2", 10)
        second = derive("p", "s", "pbkdf2", 10)
        assert first.key == second.key
        assert len(first.key) == 32

    def test_str_and_bytes_inputs_agree(self):
        assert derive("p", "s", "pbkdf2", 10).key == derive(b"p", b"s", "pbkdf2", 10).key

    @pytest.mark.parametrize(
        "changed",
        [
            ("q", "saltsalt", "pbkdf2", 10),
            ("p", "saltsalx", "pbkdf2", 10),
            ("p", "saltsalt", "pbkdf2", 11),
            ("p", "saltsalt", "argon2", 10),
        ],
    )
    def test_changing_any_argument_changes_the_key(self, changed):
        baseline = derive("p", "saltsalt", "pbkdf2", 10)
        assert derive(*changed).key != baseline.key

    def test_argon2_is_deterministic(self):
        assert derive("p", "saltsalt", "argon2", 1).key == derive("p", "saltsalt", "argon2", 1).key

    def test_parameters_are_recorded(self):
        material = derive("p", "s", "pbkdf2", 12)
        assert material.salt == b"s"
        assert material.iterations == 12
        assert material.hash_algorithm == "pbkdf2"

    def test_repr_hides_the_key(self):
        material = derive("p", "s", "pbkdf2", 10)
        assert "key" not in repr(material)


class TestInvalidInput:
    @pytest.mark.parametrize("iterations", [0, -1, 1.5, True])
    def test_bad_iterations(self, iterations):
        with pytest.raises(InvalidParameters):
            derive("p", "s", "pbkdf2", iterations)

    def test_empty_password(self):
        with pytest.raises(InvalidParameters):
            derive("", "s", "pbkdf2", 10)

    def test_empty_salt(self):
        with pytest.raises(InvalidParameters):
            derive("p", b"", "pbkdf2", 10)

    def test_unknown_algorithm(self):
        with pytest.raises(UnsupportedAlgorithm):
            derive("p", "s", "md5", 10)

    def test_argon2_rejects_short_salt(self):
        with pytest.raises(InvalidParameters):
            derive("p", "s", "argon2", 1)


class TestWiping:
    def test_wipe_zeroes_the_key(self):
        material = derive("p", "s", "pbkdf2", 10)
        assert not material.wiped
        material.wipe()
        assert material.wiped
        assert material.key == bytearray(32)

    def test_wipe_buffer_in_place(self):
        buffer = bytearray(b"secret")
        wipe_buffer(buffer)
        assert buffer == bytearray(6)

    def test_wipe_buffer_ignores_immutable(self):
        data = b"secret"
        wipe_buffer(data)
        assert data == b"secret"

    def test_password_copy_is_zeroed_after_derivation(self, monkeypatch):
        seen = []
        real_pbkdf2 = key_derivation._DERIVERS["pbkdf2"]

        def capturing(password, salt, iterations):
            seen.append(password)
            return real_pbkdf2(password, salt, iterations)

        monkeypatch.setitem(key_derivation._DERIVERS, "pbkdf2", capturing)
        material = derive("p", "s", "pbkdf2", 10)

        (buffer,) = seen
        assert isinstance(buffer, bytearray)
        assert buffer == bytearray(1)
        assert material.key == derive("p", "s", "pbkdf2", 10).key

    def test_caller_password_is_left_alone(self):
        password = bytearray(b"p")
        derive(password, "s", "pbkdf2", 10)
        assert password == bytearray(b"p")
