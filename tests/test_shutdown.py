import signal

from eulerpi.core.shutdown import ShutdownSignal


def test_flag_starts_clear_and_stays_set() -> None:
    flag = ShutdownSignal()
    assert not flag.is_set()
    flag.request()
    flag.request()
    assert flag.is_set()


def test_sigint_sets_flag_and_restore_puts_back_handler() -> None:
    previous = signal.getsignal(signal.SIGINT)
    flag = ShutdownSignal().install((signal.SIGINT,))
    try:
        signal.raise_signal(signal.SIGINT)
        assert flag.is_set()
    finally:
        flag.restore()
    assert signal.getsignal(signal.SIGINT) is previous


def test_independent_instances_do_not_share_state() -> None:
    first = ShutdownSignal()
    second = ShutdownSignal()
    first.request()
    assert first.is_set()
    assert not second.is_set()
