"""Unit tests for utility helpers."""
import pytest
from unittest.mock import MagicMock

from constructsafe.utils.helpers import is_blank, retry_on_exception


class TestRetryOnException:
    """Test the retry helper."""

    def test_returns_first_success(self):
        func = MagicMock(side_effect=[KeyError('a'), 'ok'])
        assert retry_on_exception(func, max_attempts=3, exceptions=(KeyError,)) == 'ok'
        assert func.call_count == 2

    def test_reraises_after_max_attempts(self):
        func = MagicMock(side_effect=KeyError('a'))
        with pytest.raises(KeyError):
            retry_on_exception(func, max_attempts=3, exceptions=(KeyError,))
        assert func.call_count == 3

    def test_other_exceptions_not_retried(self):
        func = MagicMock(side_effect=ValueError('bad'))
        with pytest.raises(ValueError):
            retry_on_exception(func, max_attempts=3, exceptions=(KeyError,))
        assert func.call_count == 1

    def test_on_retry_callback(self):
        seen = []
        func = MagicMock(side_effect=[KeyError('a'), KeyError('b'), 'ok'])
        retry_on_exception(
            func,
            max_attempts=3,
            exceptions=(KeyError,),
            on_retry=lambda attempt, e: seen.append(attempt),
        )
        assert seen == [1, 2]


@pytest.mark.parametrize("value, expected", [
    (None, True),
    ('', True),
    ('  \t', True),
    ('Roof', False),
    (' Roof ', False),
])
def test_is_blank(value, expected):
    assert is_blank(value) is expected
