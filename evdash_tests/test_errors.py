import unittest

from evdash.errors import (
    FailureStatus,
    NotFoundError,
    TransportFailure,
    ValidationFailure,
    as_failure,
)


class HttpError(Exception):
    def __init__(self, message, **kwargs):
        super().__init__(message)
        for key, value in kwargs.items():
            setattr(self, key, value)


class TestFailures(unittest.TestCase):
    def test_defaults(self) -> None:
        not_found = NotFoundError()
        self.assertEqual(not_found.status, FailureStatus.NOT_FOUND)
        self.assertEqual(not_found.key, "general.not_found")

        invalid = ValidationFailure("bad")
        self.assertEqual(invalid.status, FailureStatus.VALIDATION)
        self.assertEqual(invalid.message, "bad")
        self.assertEqual(str(invalid), "bad")

    def test_as_dict(self) -> None:
        failure = TransportFailure("down", http_status=503)
        self.assertEqual(
            failure.as_dict(),
            {
                "status": "generic",
                "key": "general.error_backend",
                "message": "down",
                "http_status": 503,
            },
        )

    def test_auth_expired(self) -> None:
        self.assertTrue(TransportFailure("x", http_status=401).is_auth_expired)
        self.assertFalse(TransportFailure("x", http_status=403).is_auth_expired)
        self.assertFalse(TransportFailure("x").is_auth_expired)


class TestAsFailure(unittest.TestCase):
    def test_failures_unchanged(self) -> None:
        failure = ValidationFailure("bad")
        self.assertIs(as_failure(failure), failure)

    def test_not_found(self) -> None:
        error = HttpError("gone", status_code=404)
        result = as_failure(error)
        self.assertIsInstance(result, NotFoundError)
        self.assertIs(result.details, error)

    def test_status_attribute(self) -> None:
        result = as_failure(HttpError("expired", status=401))
        self.assertIsInstance(result, TransportFailure)
        self.assertTrue(result.is_auth_expired)

    def test_non_integer_status_ignored(self) -> None:
        result = as_failure(HttpError("x", status="broken"))
        self.assertIsNone(result.http_status)

    def test_plain_exception(self) -> None:
        result = as_failure(ConnectionError(), key="general.update_error")
        self.assertIsInstance(result, TransportFailure)
        self.assertEqual(result.message, "ConnectionError")
        self.assertEqual(result.key, "general.update_error")


if __name__ == "__main__":
    unittest.main()
