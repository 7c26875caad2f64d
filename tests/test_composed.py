"""Tests for nestor.composed — synchronous multi-source merge."""

from __future__ import annotations

from typing import Any

import pytest

from nestor._errors import ContextError
from nestor.composed import ComposedSource, create_composed_context, select_from_contexts
from nestor.context import Context
from nestor.observability.collector import DiagnosticCollector
from nestor.observability.events import ComposedRecomputed, SubscriberFailed

AUTH = Context("auth")
THEME = Context("theme")


def _render(composed: Any, auth: Any, theme: Any, reader: Any = None) -> Any:
    reader = reader or composed.use_composed
    return AUTH.provide(auth, lambda: THEME.provide(theme, lambda: composed.provider({}, reader)))


@pytest.fixture
def session(collector: DiagnosticCollector) -> Any:
    return create_composed_context(
        {
            "user": ComposedSource(AUTH, lambda auth: auth["user"]),
            "theme": THEME,
        },
        display_name="Session",
        collector=collector,
    )


class TestMerge:
    def test_merges_selected_slices(self, session: Any) -> None:
        merged = _render(session, {"user": "ada", "token": "t1"}, "dark")
        assert dict(merged) == {"user": "ada", "theme": "dark"}

    def test_merged_view_is_read_only(self, session: Any) -> None:
        merged = _render(session, {"user": "ada"}, "dark")
        with pytest.raises(TypeError):
            merged["user"] = "mallory"

    def test_selector_skipped_for_none(self, session: Any) -> None:
        merged = _render(session, None, "dark")
        assert merged["user"] is None

    def test_bare_context_shorthand(self, collector: DiagnosticCollector) -> None:
        composed = create_composed_context({"theme": THEME}, collector=collector)
        merged = THEME.provide("light", lambda: composed.provider({}, composed.use_composed))
        assert merged == {"theme": "light"}
        assert composed.source_names == ("theme",)


class TestRecompute:
    def test_recompute_only_when_selected_slice_changes(self, session: Any) -> None:
        first = _render(session, {"user": "ada", "token": "t1"}, "dark")
        assert session.recompute_count == 1

        # Token churn is outside the selected slice.
        for token in ("t2", "t3", "t4"):
            again = _render(session, {"user": "ada", "token": token}, "dark")
            assert again is first
        assert session.recompute_count == 1

        changed = _render(session, {"user": "grace", "token": "t5"}, "dark")
        assert changed is not first
        assert session.recompute_count == 2

    def test_shallow_compare_of_new_but_equal_slices(self, collector: DiagnosticCollector) -> None:
        composed = create_composed_context(
            {"prefs": ComposedSource(THEME, lambda t: {"mode": t["mode"], "size": t["size"]})},
            collector=collector,
        )
        render = lambda theme: THEME.provide(theme, lambda: composed.provider({}, composed.use_composed))  # noqa: E731
        render({"mode": "dark", "size": 12, "noise": 1})
        render({"mode": "dark", "size": 12, "noise": 2})
        assert composed.recompute_count == 1

    def test_recompute_recorded_with_changed_names(
        self, session: Any, collector: DiagnosticCollector
    ) -> None:
        _render(session, {"user": "ada"}, "dark")
        _render(session, {"user": "ada"}, "light")
        events = collector.log.query(event_type=ComposedRecomputed)
        assert events[0].changed == ("theme",)
        assert events[1].changed == ("user", "theme")

    def test_subscribers_notified_once_per_rebuild(self, session: Any) -> None:
        notified: list[Any] = []
        unsubscribe = session.subscribe(notified.append)

        _render(session, {"user": "ada"}, "dark")
        _render(session, {"user": "ada"}, "dark")
        _render(session, {"user": "ada"}, "light")
        assert [dict(m) for m in notified] == [
            {"user": "ada", "theme": "dark"},
            {"user": "ada", "theme": "light"},
        ]

        unsubscribe()
        _render(session, {"user": "grace"}, "light")
        assert len(notified) == 2

    def test_subscriber_error_isolated(
        self, session: Any, collector: DiagnosticCollector
    ) -> None:
        def bad(merged: Any) -> None:
            raise RuntimeError("listener bug")

        session.subscribe(bad)
        merged = _render(session, {"user": "ada"}, "dark")
        assert merged["user"] == "ada"
        assert len(collector.log.query(event_type=SubscriberFailed)) == 1

    def test_consistent_snapshot_within_one_render(self, session: Any) -> None:
        seen: list[Any] = []

        def reader() -> None:
            seen.append((session.use_composed()["user"], AUTH.read()["user"]))

        _render(session, {"user": "ada"}, "dark", reader)
        _render(session, {"user": "grace"}, "dark", reader)
        assert seen == [("ada", "ada"), ("grace", "grace")]


class TestMounts:
    def test_separate_mounts_keep_separate_caches(self, session: Any) -> None:
        left = session.mount()
        right = session.mount()

        def render(mount: Any, user: str) -> Any:
            return AUTH.provide(
                {"user": user},
                lambda: THEME.provide("dark", lambda: mount({}, session.use_composed)),
            )

        first_left = render(left, "ada")
        first_right = render(right, "grace")
        assert session.recompute_count == 2

        for _ in range(3):
            assert render(left, "ada") is first_left
            assert render(right, "grace") is first_right
        assert session.recompute_count == 2

    def test_shared_default_provider_rebuilds_on_alternation(self, session: Any) -> None:
        _render(session, {"user": "ada"}, "dark")
        _render(session, {"user": "grace"}, "dark")
        _render(session, {"user": "ada"}, "dark")
        assert session.recompute_count == 3


class TestReader:
    def test_use_composed_outside_provider_raises(self, session: Any) -> None:
        with pytest.raises(ContextError, match="SessionProvider"):
            session.use_composed()


class TestSelectFromContexts:
    def test_reads_all_in_one_pass(self) -> None:
        result = AUTH.provide(
            {"user": "ada"},
            lambda: THEME.provide(
                "dark",
                lambda: select_from_contexts(
                    lambda get: f"{get(AUTH)['user']}@{get(THEME)}", [AUTH, THEME]
                ),
            ),
        )
        assert result == "ada@dark"

    def test_undeclared_context_raises(self) -> None:
        with pytest.raises(ContextError, match="not declared"):
            select_from_contexts(lambda get: get(THEME), [AUTH])
