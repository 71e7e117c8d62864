"""Tests for axelsp.session.router — notification classification and dispatch."""
from __future__ import annotations

import logging

from axelsp.session.router import (
    ConsoleSink,
    LogSeverity,
    NotificationRouter,
    PopupLevel,
    classify_log_message,
    classify_notification,
    classify_show_message,
)


class TestClassification:
    def test_log_message_severity(self):
        result = classify_log_message({'type': 2, 'message': 'careful'})
        assert result.severity is LogSeverity.WARNING
        assert result.lines == ['[LSP] Warning: careful']
        assert result.popup is None

    def test_unknown_severity_keeps_code(self):
        result = classify_log_message({'type': 9, 'message': 'odd'})
        assert result.severity is None
        assert result.lines == ['[LSP] 9: odd']

    def test_show_message_levels(self):
        assert classify_show_message({'type': 1, 'message': 'x'}).popup is PopupLevel.ERROR
        assert classify_show_message({'type': 2, 'message': 'x'}).popup is PopupLevel.WARNING
        assert classify_show_message({'type': 3, 'message': 'x'}).popup is PopupLevel.INFO
        assert classify_show_message({'type': 4, 'message': 'x'}).popup is PopupLevel.INFO

    def test_reserved_methods_produce_nothing(self):
        for method in ('textDocument/publishDiagnostics', '$/progress', 'window/workDoneProgress'):
            assert classify_notification(method, {'a': 1}).lines == []

    def test_generic_notification_lines(self):
        result = classify_notification('custom/foo', {'a': 1})
        assert result.lines[0] == '[LSP] Notification: custom/foo'
        assert result.lines[1] == '  Params: {\n  "a": 1\n}'

    def test_generic_notification_without_params(self):
        assert classify_notification('custom/ping', {}).lines == ['[LSP] Notification: custom/ping']


class TestDispatch:
    def test_show_message_error(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('window/showMessage', {'type': 1, 'message': 'x'})
        assert sink.lines == ['[LSP] showMessage Error: x']
        assert sink.popups == [(PopupLevel.ERROR, 'Axe LSP: x')]

    def test_show_message_info_is_never_error(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('window/showMessage', {'type': 3, 'message': 'indexed'})
        assert sink.popups == [(PopupLevel.INFO, 'Axe LSP: indexed')]

    def test_log_message_has_no_popup(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('window/logMessage', {'type': 1, 'message': 'crashed'})
        assert sink.lines == ['[LSP] Error: crashed']
        assert sink.popups == []

    def test_diagnostics_are_not_logged(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('textDocument/publishDiagnostics', {'uri': 'file:///a.axe', 'diagnostics': []})
        assert sink.lines == []

    def test_custom_notification_is_logged(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('custom/foo', {'a': 1})
        assert sink.lines[0] == '[LSP] Notification: custom/foo'
        assert len(sink.lines) == 2

    def test_arrival_order_is_kept(self, sink):
        router = NotificationRouter(sink)
        for i in range(5):
            router.dispatch('window/logMessage', {'type': 4, 'message': str(i)})
        assert sink.lines == [f'[LSP] Log: {i}' for i in range(5)]

    def test_handler_error_is_contained(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('window/logMessage', None)
        router.dispatch('window/showMessage', ['not', 'a', 'mapping'])
        assert sink.lines[0] == '[LSP] None: '
        assert sink.lines[1].startswith('Error handling window/showMessage:')
        router.dispatch('custom/after', {})
        assert sink.lines[-1] == '[LSP] Notification: custom/after'

    def test_sink_error_is_contained(self):
        class ExplodingSink:
            def __init__(self):
                self.lines = []

            def append_line(self, text, severity=None):
                if text.startswith('[LSP]'):
                    raise OSError('output closed')
                self.lines.append(text)

            def show_message(self, level, text):
                raise AssertionError('unexpected popup')

        exploding = ExplodingSink()
        router = NotificationRouter(exploding)
        router.dispatch('custom/foo', {'a': 1})
        assert exploding.lines == ['Error handling custom/foo: output closed']

    def test_registered_handler(self, sink):
        router = NotificationRouter(sink)
        router.register('axe/indexed', lambda method, params: classify_log_message(
            {'type': 3, 'message': f"indexed {params['count']} files"}))
        router.dispatch('axe/indexed', {'count': 12})
        assert sink.lines == ['[LSP] Info: indexed 12 files']

    def test_severity_reaches_sink(self, sink):
        router = NotificationRouter(sink)
        router.dispatch('window/logMessage', {'type': 2, 'message': 'slow'})
        router.dispatch('custom/foo', {})
        assert sink.severities == [LogSeverity.WARNING, None]


class TestConsoleSink:
    def test_levels_follow_severity(self, caplog):
        console = ConsoleSink(logging.getLogger('axelsp.output.test'))
        with caplog.at_level(logging.DEBUG, logger='axelsp.output.test'):
            console.append_line('bad', LogSeverity.ERROR)
            console.append_line('careful', LogSeverity.WARNING)
            console.append_line('noted', LogSeverity.INFO)
            console.append_line('chatter', LogSeverity.LOG)
            console.append_line('plain')
        assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
            (logging.ERROR, 'bad'),
            (logging.WARNING, 'careful'),
            (logging.INFO, 'noted'),
            (logging.DEBUG, 'chatter'),
            (logging.INFO, 'plain'),
        ]
