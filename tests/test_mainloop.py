import threading

import pytest

from appinstalld.mainloop import App, MainLoop, get_default_loop, run_async


def test_call_soon_runs_in_fifo_order():
    loop = MainLoop()
    seen = []
    loop.call_soon(seen.append, "first")
    loop.call_soon(seen.append, "second")
    assert loop.run_pending() == 2
    assert seen == ["first", "second"]
    assert loop.run_pending() == 0


def test_call_later_not_due_yet():
    loop = MainLoop()
    seen = []
    loop.call_later(60, seen.append, "late")
    assert loop.run_pending() == 0
    assert seen == []


def test_cancelled_timer_does_not_run():
    loop = MainLoop()
    seen = []
    timer = loop.call_soon(seen.append, "x")
    timer.cancel()
    assert loop.run_pending() == 0
    assert seen == []


def test_callbacks_added_while_running_wait_for_next_pass():
    loop = MainLoop()
    seen = []

    def first():
        seen.append("first")
        loop.call_soon(seen.append, "nested")

    loop.call_soon(first)
    assert loop.run_pending() == 1
    assert seen == ["first"]
    assert loop.run_pending() == 1
    assert seen == ["first", "nested"]


def test_negative_delay_rejected():
    loop = MainLoop()
    with pytest.raises(ValueError):
        loop.call_later(-1, print)


def test_exception_keeps_remaining_callbacks():
    loop = MainLoop()
    seen = []

    def broken():
        raise RuntimeError("boom")

    loop.call_soon(broken)
    loop.call_soon(seen.append, "after")
    with pytest.raises(RuntimeError):
        loop.run_pending()
    assert loop.run_pending() == 1
    assert seen == ["after"]


def test_run_orders_by_deadline_and_quits():
    loop = MainLoop()
    seen = []
    loop.call_later(0.05, seen.append, "slow")
    loop.call_later(0.01, seen.append, "fast")
    loop.call_later(0.1, loop.quit)
    loop.run()
    assert seen == ["fast", "slow"]
    assert loop.is_running is False


def test_quit_from_other_thread():
    loop = MainLoop()
    seen = []
    runner = threading.Thread(target=loop.run)
    runner.start()
    loop.call_soon(seen.append, "from thread")
    loop.call_later(0.02, loop.quit)
    runner.join(timeout=5)
    assert not runner.is_alive()
    assert seen == ["from thread"]


def test_default_loop_is_shared():
    first = get_default_loop()
    first.run_pending()
    seen = []
    first.call_soon(seen.append, 1)
    assert get_default_loop() is first
    assert get_default_loop().run_pending() == 1
    assert seen == [1]


def test_run_async_uses_default_loop():
    loop = get_default_loop()
    loop.run_pending()
    seen = []
    run_async(lambda: seen.append("done"))
    assert loop.run_pending() == 1
    assert seen == ["done"]


class _RecordingApp(App):
    def __init__(self):
        super().__init__()
        self.events = []

    def on_create(self):
        self.events.append("create")

    def on_destroy(self):
        self.events.append("destroy")


def test_app_lifecycle():
    get_default_loop().run_pending()
    app = _RecordingApp()
    app.create()
    assert app.main_loop is get_default_loop()
    run_async(app.quit, 0.01)
    app.run()
    assert app.events == ["create", "destroy"]
    assert app.main_loop is None


def test_app_run_without_create_returns():
    loop = get_default_loop()
    loop.run_pending()
    app = _RecordingApp()
    App.run(app)
    assert app.events == []
    assert app.main_loop is None
    assert loop.run_pending() == 0


def test_app_create_failure_propagates():
    class Failing(_RecordingApp):
        def on_create(self):
            raise RuntimeError("init failed")

    app = Failing()
    with pytest.raises(RuntimeError, match="init failed"):
        App.create(app)
    assert app.events == []


def test_app_is_abstract():
    with pytest.raises(TypeError):
        App()