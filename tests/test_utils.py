"""Tests for the retry decorator, rate limiter and input helpers."""
import unittest
from unittest.mock import MagicMock, patch

import requests

from bibliography_manager.utils.error_handling import file_operation_handler, handle_api_errors
from bibliography_manager.utils.input_validation import InputValidator, parse_author_list
from bibliography_manager.utils.rate_limiter import RateLimiter, get_rate_limiter


def http_error(status_code, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    error = requests.exceptions.HTTPError(f"{status_code} Error")
    error.response = response
    return error


class TestHandleApiErrors(unittest.TestCase):
    def test_returns_value(self):
        @handle_api_errors(max_retries=2)
        def ok():
            return "value"
        self.assertEqual(ok(), "value")

    @patch('bibliography_manager.utils.error_handling.time.sleep')
    def test_retries_server_errors(self, mock_sleep):
        calls = MagicMock(side_effect=[http_error(502), http_error(503), "done"])

        @handle_api_errors(max_retries=2)
        def flaky():
            result = calls()
            if isinstance(result, Exception):
                raise result
            return result

        self.assertEqual(flaky(), "done")
        self.assertEqual(calls.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    @patch('bibliography_manager.utils.error_handling.time.sleep')
    def test_client_errors_not_retried(self, mock_sleep):
        calls = MagicMock(side_effect=http_error(400))

        @handle_api_errors(max_retries=2)
        def bad_request():
            calls()

        self.assertIsNone(bad_request())
        self.assertEqual(calls.call_count, 1)
        mock_sleep.assert_not_called()

    @patch('bibliography_manager.utils.error_handling.time.sleep')
    def test_rate_limit_honours_retry_after(self, mock_sleep):
        calls = MagicMock(side_effect=[http_error(429, {"Retry-After": "7"}), "ok"])

        @handle_api_errors(max_retries=1)
        def limited():
            result = calls()
            if isinstance(result, Exception):
                raise result
            return result

        self.assertEqual(limited(), "ok")
        mock_sleep.assert_called_once_with(7)

    def test_file_operation_handler(self):
        @file_operation_handler
        def broken():
            raise FileNotFoundError("gone")
        self.assertIsNone(broken())


class TestRateLimiter(unittest.TestCase):
    @patch('bibliography_manager.utils.rate_limiter.time.sleep')
    def test_waits_when_limit_reached(self, mock_sleep):
        limiter = RateLimiter(max_calls=2, period=60)
        for _ in range(3):
            with limiter:
                pass
        mock_sleep.assert_called_once()

    @patch('bibliography_manager.utils.rate_limiter.time.sleep')
    def test_decorator(self, mock_sleep):
        limiter = RateLimiter(max_calls=5, period=1)

        @limiter
        def call(x):
            return x * 2

        self.assertEqual(call(2), 4)
        mock_sleep.assert_not_called()

    def test_wait_without_history_is_free(self):
        self.assertEqual(RateLimiter(max_calls=1, period=10).wait(), 0.0)

    def test_shared_limiters(self):
        self.assertIs(get_rate_limiter("crossref", 10, 1), get_rate_limiter("crossref", 99, 9))


class TestInputValidator(unittest.TestCase):
    def test_parse_author_list(self):
        self.assertEqual(parse_author_list("Smith, John; ; Jane Doe "), ["Smith, John", "Jane Doe"])
        self.assertEqual(parse_author_list(None), [])

    @patch('builtins.input', return_value="1999")
    def test_get_year(self, _input):
        self.assertEqual(InputValidator.get_year(), 1999)

    @patch('builtins.input', return_value="99")
    def test_get_year_invalid(self, _input):
        self.assertIsNone(InputValidator.get_year())

    @patch('builtins.input', side_effect=KeyboardInterrupt)
    def test_cancelled(self, _input):
        self.assertIsNone(InputValidator.get_title())


if __name__ == "__main__":
    unittest.main()
