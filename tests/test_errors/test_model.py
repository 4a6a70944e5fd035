"""Tests for ErrorObject, factories and classification."""

from __future__ import annotations

import errno

import pytest

from faultline.errors.model import (
    ErrorKind,
    ErrorObject,
    assertion_error,
    classify,
    coerce,
    from_os_error,
    runtime_error,
    system_error,
    user_error,
)


class TestErrorObject:
    def test_fields(self):
        err = user_error("bad input")
        assert err.kind is ErrorKind.USER_ERROR
        assert err.message == "bad input"
        assert err.code is None
        assert err.cause is None
        assert str(err) == "bad input"

    def test_is_raisable(self):
        with pytest.raises(ErrorObject, match="boom"):
            raise runtime_error("boom")

    def test_code_required_for_system_error(self):
        with pytest.raises(ValueError):
            ErrorObject(ErrorKind.SYSTEM_ERROR, "no code")

    def test_code_rejected_for_other_kinds(self):
        with pytest.raises(ValueError):
            ErrorObject(ErrorKind.USER_ERROR, "oops", code="ENOENT")

    def test_kind_must_be_enum(self):
        with pytest.raises(TypeError):
            ErrorObject("UserError", "oops")  # type: ignore[arg-type]

    def test_cause_must_be_error_object(self):
        with pytest.raises(TypeError):
            ErrorObject(ErrorKind.USER_ERROR, "outer", cause=ValueError("x"))  # type: ignore[arg-type]

    def test_attributes_are_read_only(self):
        err = user_error("x")
        with pytest.raises(AttributeError):
            err.kind = ErrorKind.SYSTEM_ERROR  # type: ignore[misc]
        with pytest.raises(AttributeError):
            err.message = "y"  # type: ignore[misc]
        with pytest.raises(AttributeError):
            err.cause = user_error("z")  # type: ignore[misc]

    def test_details_are_read_only(self):
        err = system_error("ENOENT", path="/x")
        with pytest.raises(TypeError):
            err.details["path"] = "/y"  # type: ignore[index]

    def test_origin_points_at_creator(self):
        err = user_error("here")
        assert err.origin
        assert err.origin[-1].name == "test_origin_points_at_creator"
        assert "test_origin_points_at_creator" in err.format_origin()

    def test_origin_unchanged_by_raise(self):
        err = user_error("x")
        before = err.origin
        try:
            raise err
        except ErrorObject:
            pass
        assert err.origin is before

    def test_repr(self):
        assert "SystemError" in repr(system_error("EPIPE"))
        assert "'EPIPE'" in repr(system_error("EPIPE"))


class TestCauseChain:
    def test_chain_order(self):
        root = system_error("ECONNRESET")
        middle = runtime_error("decode failed", cause=root)
        top = user_error("request failed", cause=middle)
        assert list(top.chain()) == [top, middle, root]

    def test_native_cause_mirrors_chain(self):
        root = user_error("root")
        top = user_error("top", cause=root)
        assert top.__cause__ is root


class TestFatal:
    def test_assertion_always_fatal(self):
        assert assertion_error("broken").fatal is True

    def test_explicit_fatal_marker(self):
        assert user_error("corrupt state", fatal=True).fatal is True

    def test_default_not_fatal(self):
        assert user_error("x").fatal is False
        assert system_error("ENOENT").fatal is False


class TestSystemError:
    def test_message_from_registry(self):
        err = system_error("ENOENT", syscall="open", path="/tmp/missing.txt")
        assert err.message == "ENOENT: no such file or directory, open '/tmp/missing.txt'"
        assert err.details["syscall"] == "open"
        assert err.details["path"] == "/tmp/missing.txt"

    def test_message_without_syscall(self):
        assert system_error("EPIPE").message == "EPIPE: broken pipe"

    def test_explicit_message(self):
        err = system_error("ETIMEDOUT", "upstream took too long", address="10.0.0.1", port=443)
        assert err.message == "upstream took too long"
        assert dict(err.details) == {"address": "10.0.0.1", "port": 443}

    def test_describe(self):
        info = system_error("EACCES").describe()
        assert info is not None
        assert info.label == "Permission denied"
        assert user_error("x").describe() is None

    def test_from_os_error(self, tmp_path):
        missing = tmp_path / "nope.txt"
        try:
            open(missing)
        except OSError as exc:
            err = from_os_error(exc, syscall="open")
        assert err.kind is ErrorKind.SYSTEM_ERROR
        assert err.code == "ENOENT"
        assert str(missing) in err.message
        assert err.details["errno"] == errno.ENOENT
        assert err.origin[-1].name == "test_from_os_error"


class TestClassify:
    @pytest.mark.parametrize(
        "exc",
        [TypeError("t"), ValueError("v"), NameError("n"), KeyError("k"), ZeroDivisionError()],
    )
    def test_runtime_errors(self, exc):
        assert classify(exc) is ErrorKind.STANDARD_RUNTIME_ERROR

    def test_malformed_uri(self):
        exc = UnicodeDecodeError("utf-8", b"%ff", 0, 1, "invalid start byte")
        assert classify(exc) is ErrorKind.STANDARD_RUNTIME_ERROR

    def test_os_error(self):
        assert classify(FileNotFoundError(errno.ENOENT, "missing")) is ErrorKind.SYSTEM_ERROR

    def test_os_error_without_errno(self):
        assert classify(OSError("weird")) is ErrorKind.USER_ERROR

    @pytest.mark.parametrize(
        ("exc_type", "code"),
        [
            (FileNotFoundError, "ENOENT"),
            (ConnectionResetError, "ECONNRESET"),
            (ConnectionRefusedError, "ECONNREFUSED"),
            (BrokenPipeError, "EPIPE"),
            (TimeoutError, "ETIMEDOUT"),
            (PermissionError, "EACCES"),
            (IsADirectoryError, "EISDIR"),
            (NotADirectoryError, "ENOTDIR"),
            (FileExistsError, "EEXIST"),
        ],
    )
    def test_os_error_subclass_without_errno(self, exc_type: type[OSError], code: str):
        exc = exc_type("Connection lost")
        assert classify(exc) is ErrorKind.SYSTEM_ERROR
        err = coerce(exc)
        assert err.code == code
        assert err.details["reason"] == "Connection lost"
        assert "errno" not in err.details

    def test_native_assertion(self):
        assert classify(AssertionError("x")) is ErrorKind.ASSERTION_ERROR

    def test_application_exception(self):
        class PaymentDeclined(Exception):
            pass

        assert classify(PaymentDeclined()) is ErrorKind.USER_ERROR

    def test_error_object_keeps_kind(self):
        assert classify(system_error("EPERM")) is ErrorKind.SYSTEM_ERROR


class TestCoerce:
    def test_identity_for_error_objects(self):
        err = user_error("x")
        assert coerce(err) is err

    def test_native_exception(self):
        try:
            int("abc")
        except ValueError as exc:
            err = coerce(exc)
        assert err.kind is ErrorKind.STANDARD_RUNTIME_ERROR
        assert "abc" in err.message
        assert err.details["exception_type"] == "ValueError"
        assert err.origin[-1].name == "test_native_exception"

    def test_empty_message_uses_type_name(self):
        assert coerce(RuntimeError()).message == "RuntimeError"

    def test_native_cause_chain(self):
        try:
            try:
                raise KeyError("inner")
            except KeyError as inner:
                raise RuntimeError("outer") from inner
        except RuntimeError as exc:
            err = coerce(exc)
        assert [e.kind for e in err.chain()] == [
            ErrorKind.USER_ERROR,
            ErrorKind.STANDARD_RUNTIME_ERROR,
        ]

    def test_native_assertion_is_fatal(self):
        assert coerce(AssertionError("invariant")).fatal is True

    def test_os_error_becomes_system_error(self):
        err = coerce(PermissionError(errno.EACCES, "Permission denied", "/root/x"))
        assert err.code == "EACCES"
        assert err.details["path"] == "/root/x"

    def test_from_os_error_unmapped_falls_back(self):
        err = from_os_error(OSError("weird"))
        assert err.kind is ErrorKind.USER_ERROR
        assert err.code is None

    def test_same_native_exception_coerces_to_same_object(self):
        exc = ValueError("twice")
        assert coerce(exc) is coerce(exc)
