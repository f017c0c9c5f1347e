"""Unit tests for the poll combinator."""

from unittest.mock import Mock

from autoinvest.utils.polling import poll_until


class TestPollUntil:
    """Test cases for poll_until."""

    def test_first_evaluation_immediate(self, clock) -> None:
        """Test a predicate that is already true never sleeps."""
        predicate = Mock(return_value=True)

        outcome = poll_until(predicate, interval=1.0, timeout=30.0, sleep=clock.sleep, clock=clock)

        assert outcome.met
        assert not outcome.timed_out
        assert outcome.attempts == 1
        assert clock.sleeps == []

    def test_met_after_retries(self, clock) -> None:
        """Test polling continues until the predicate is true."""
        predicate = Mock(side_effect=[False, False, True])

        outcome = poll_until(predicate, interval=2.0, timeout=60.0, sleep=clock.sleep, clock=clock)

        assert outcome.met
        assert outcome.attempts == 3
        assert clock.sleeps == [2.0, 2.0]

    def test_timeout(self, clock) -> None:
        """Test the loop stops at the deadline."""
        predicate = Mock(return_value=False)

        outcome = poll_until(predicate, interval=2.0, timeout=5.0, sleep=clock.sleep, clock=clock)

        assert not outcome.met
        assert outcome.timed_out
        assert outcome.attempts == 3
        # last sleep is cut to the remaining time
        assert clock.sleeps == [2.0, 2.0, 1.0]

    def test_errors_are_not_raised(self, clock) -> None:
        """Test predicate exceptions count as not-yet."""
        predicate = Mock(side_effect=[RuntimeError("boom"), True])

        outcome = poll_until(predicate, interval=1.0, timeout=10.0, sleep=clock.sleep, clock=clock)

        assert outcome.met
        assert outcome.attempts == 2
        assert isinstance(outcome.last_error, RuntimeError)

    def test_errors_until_timeout(self, clock) -> None:
        """Test persistent errors end in a timeout with the last error kept."""
        predicate = Mock(side_effect=ConnectionError("refused"))

        outcome = poll_until(predicate, interval=1.0, timeout=3.0, sleep=clock.sleep, clock=clock)

        assert outcome.timed_out
        assert isinstance(outcome.last_error, ConnectionError)
