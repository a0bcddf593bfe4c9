"""Tests for SyncOptions callback handling."""

import logging

from catalogsync.application.sync import SyncOptions
from catalogsync.core.domain import ChangeName, SetDescription
from catalogsync.core.ports import BatchConfig


class TestErrorAndWarningCallbacks:
    def test_error_callback_receives_arguments(self, recorder):
        options = SyncOptions(error_callback=recorder.on_error)
        error = ValueError("x")

        options.apply_error_callback("failed", error)

        assert recorder.errors == [("failed", error)]

    def test_warning_callback(self, recorder):
        options = SyncOptions(warning_callback=recorder.on_warning)

        options.apply_warning_callback("careful")

        assert recorder.warning_messages == ["careful"]

    def test_missing_callbacks_only_log(self, caplog):
        options = SyncOptions()

        with caplog.at_level(logging.WARNING, logger="SyncOptions"):
            options.apply_error_callback("failed")
            options.apply_warning_callback("careful")

        assert "failed" in caplog.text
        assert "careful" in caplog.text

    def test_raising_callback_is_contained(self, caplog):
        def broken(*args):
            raise RuntimeError("callback bug")

        options = SyncOptions(error_callback=broken, warning_callback=broken)

        options.apply_error_callback("failed")
        options.apply_warning_callback("careful")

        assert "callback bug" in caplog.text


class TestBeforeCallbacks:
    def test_before_update_can_filter(self, sample_resource, make_category_draft):
        options = SyncOptions(
            before_update_callback=lambda actions, draft, old: [
                a for a in actions if not isinstance(a, SetDescription)
            ]
        )
        actions = [ChangeName(name={"en": "X"}), SetDescription()]

        result = options.apply_before_update_callback(
            actions, make_category_draft("shoes"), sample_resource
        )

        assert result == [ChangeName(name={"en": "X"})]

    def test_before_update_none_means_nothing(self, sample_resource, make_category_draft):
        options = SyncOptions(before_update_callback=lambda *args: None)

        result = options.apply_before_update_callback(
            [ChangeName(name={"en": "X"})], make_category_draft("shoes"), sample_resource
        )

        assert result == []

    def test_before_update_skipped_without_actions(self, sample_resource, make_category_draft):
        calls = []
        options = SyncOptions(before_update_callback=lambda *args: calls.append(args))

        options.apply_before_update_callback([], make_category_draft("shoes"), sample_resource)

        assert calls == []

    def test_before_create_rewrites_draft(self, make_category_draft):
        replacement = make_category_draft("other")
        options = SyncOptions(before_create_callback=lambda draft: replacement)

        assert options.apply_before_create_callback(make_category_draft("shoes")) is replacement

    def test_before_create_default_passthrough(self, make_category_draft):
        draft = make_category_draft("shoes")
        assert SyncOptions().apply_before_create_callback(draft) is draft


def test_batch_size_property():
    assert SyncOptions(batch=BatchConfig(batch_size=7)).batch_size == 7
