from __future__ import annotations

"""CLI for gabstudy using SessionManager and the Parquet stores."""

import argparse
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .. import __version__
from ..catalog.categories import CATEGORIES, CATEGORY_MAP, MISTAKE_TAGS, category_label
from ..catalog.loader import YamlCatalog
from ..config.config import load_config, validate_config
from ..errors import GabStudyError
from ..models import Question, QuestionNote, SessionAnswer, SessionState, TestResult
from ..scheduler.review_scheduler import interval_label
from ..util.randomness import seed_if_needed
from .presets import SESSION_DEFAULTS, TEST_PRESETS, get_test_preset
from .session_manager import SessionManager

UI = Dict[str, Callable[..., Any]]

PRACTICE_KINDS = ("quick", "review", "speed", "random", "category", "bookmarked")


class SessionPaused(Exception):
    """The user stopped a session to finish it later."""


def _default_ui() -> UI:
    return {"ask": input, "inform": print, "clock": time.monotonic}


def _build_manager(args: argparse.Namespace) -> SessionManager:
    from storage.store import (
        JsonSettingsStore,
        ParquetAttemptStore,
        ParquetNoteStore,
        ParquetScheduleStore,
        ParquetSessionStateStore,
        ParquetTestResultStore,
    )

    cfg = validate_config(load_config(args.config))
    data_dir = Path(args.data_dir or cfg["storage"]["data_dir"])
    return SessionManager(
        YamlCatalog(args.catalog),
        ParquetAttemptStore(data_dir),
        ParquetScheduleStore(data_dir),
        JsonSettingsStore(data_dir),
        ParquetTestResultStore(data_dir),
        notes=ParquetNoteStore(data_dir),
        sessions=ParquetSessionStateStore(data_dir),
        cfg=cfg,
    )


def _questions(sm: SessionManager, ids: List[str]) -> List[Question]:
    by_id = {q.id: q for q in sm.catalog.questions()}
    return [by_id[i] for i in ids]


def _ask_choice(q: Question, ui: UI) -> Optional[int]:
    """Prompt until a valid choice letter; empty input skips, Q pauses."""
    letters = "ABCDE"[: len(q.choices)] or "ABCDE"
    while True:
        try:
            raw = ui["ask"](f"Answer [{'/'.join(letters)}, Enter to skip, Q to save and quit]: ").strip().upper()
        except (EOFError, KeyboardInterrupt):
            raise SessionPaused() from None
        if not raw:
            return None
        if raw == "Q":
            raise SessionPaused()
        if len(raw) == 1 and raw in letters:
            return letters.index(raw)
        ui["inform"](f"Please answer one of {', '.join(letters)}.")


def _format_note(note: QuestionNote) -> str:
    parts = ["bookmarked" if note.bookmarked else "not bookmarked"]
    if note.tags:
        parts.append("tags: " + ", ".join(MISTAKE_TAGS.get(t, t) for t in note.tags))
    if note.memo:
        parts.append(f"memo: {note.memo}")
    return "; ".join(parts)


def _show(q: Question, idx: int, total: int, sm: SessionManager, ui: UI) -> None:
    target = sm.target_times().get(q.category)
    ui["inform"](f"\n[{idx}/{total}] {category_label(q.category)} {'*' * q.difficulty} (target {target}s)")
    note = sm.notes.get(q.id) if sm.notes is not None else None
    if note is not None and (note.tags or note.memo):
        ui["inform"](f"  Note: {_format_note(note)}")
    ui["inform"](q.prompt)
    for letter, choice in zip("ABCDE", q.choices):
        ui["inform"](f"  {letter}. {choice}")


def _elapsed_ms(state: SessionState, run_started: float, ui: UI) -> int:
    return state.elapsed_ms + int((ui["clock"]() - run_started) * 1000)


def _paused(sm: SessionManager, state: SessionState, ui: UI) -> None:
    sm.save_progress(state)
    ui["inform"](f"\nSession saved at question {state.current_index + 1}/{len(state.question_ids)}. Run `gabstudy resume` to continue.")


def play_session(sm: SessionManager, state: SessionState, ui: UI) -> Dict[str, int]:
    """Ask each question from `state.current_index`, recording every answer immediately.

    Progress is saved after each answer and cleared when the last question is done.
    """
    questions = _questions(sm, list(state.question_ids))
    correct = 0
    answered = 0
    run_started = ui["clock"]()
    for i in range(state.current_index, len(questions)):
        q = questions[i]
        _show(q, i + 1, len(questions), sm, ui)
        started = ui["clock"]()
        try:
            choice = _ask_choice(q, ui)
        except SessionPaused:
            _paused(sm, replace(state, current_index=i, elapsed_ms=_elapsed_ms(state, run_started, ui)), ui)
            return {"total": answered, "correct": correct, "paused": 1}
        if choice is not None:
            ms = int((ui["clock"]() - started) * 1000)
            outcome = sm.record_answer(q.id, choice, ms)
            answered += 1
            if outcome.attempt.is_correct:
                correct += 1
                note = " (correct but slow)" if outcome.slow else ""
                ui["inform"](f"Correct{note}. Next review {interval_label(outcome.entry.stage, sm.intervals())}.")
            else:
                ui["inform"](f"Wrong, answer is {'ABCDE'[q.correct_index]}. Next review {interval_label(outcome.entry.stage, sm.intervals())}.")
                for step in q.explanation:
                    ui["inform"](f"  {step.label}: {step.content}")
        sm.save_progress(replace(state, current_index=i + 1, elapsed_ms=_elapsed_ms(state, run_started, ui)))
    sm.clear_session(state)
    return {"total": answered, "correct": correct, "paused": 0}


def play_test(sm: SessionManager, state: SessionState, ui: UI) -> Optional[TestResult]:
    """Timed test: answers are graded and stored together at the end.

    The time limit counts `state.elapsed_ms` already spent. Returns None when paused.
    """
    questions = _questions(sm, list(state.question_ids))
    answers: List[SessionAnswer] = list(state.answers)
    run_started = ui["clock"]()
    deadline = run_started + int(state.time_limit_s or 0) - state.elapsed_ms / 1000
    for i in range(state.current_index, len(questions)):
        if ui["clock"]() >= deadline:
            ui["inform"]("Time is up.")
            answers.extend(SessionAnswer(question_id=rest.id) for rest in questions[i:])
            break
        q = questions[i]
        _show(q, i + 1, len(questions), sm, ui)
        started = ui["clock"]()
        try:
            choice = _ask_choice(q, ui)
        except SessionPaused:
            paused = replace(state, current_index=i, answers=tuple(answers), elapsed_ms=_elapsed_ms(state, run_started, ui))
            _paused(sm, paused, ui)
            return None
        ms = int((ui["clock"]() - started) * 1000)
        answers.append(SessionAnswer(question_id=q.id, selected_index=choice, time_ms=ms))
        sm.save_progress(
            replace(state, current_index=i + 1, answers=tuple(answers), elapsed_ms=_elapsed_ms(state, run_started, ui))
        )
    result = sm.finish_test(answers, label=state.label)
    sm.clear_session(state)
    return result


def _run_test(sm: SessionManager, ids: List[str], ui: UI, *, label: str, time_limit_s: int) -> None:
    state = sm.new_session_state("test", ids, time_limit_s=time_limit_s, label=label)
    ui["inform"](f"{label}: {len(ids)} questions, {time_limit_s // 60} min")
    result = play_test(sm, state, ui)
    if result is not None:
        _print_result(result, ui)


def _print_result(result: TestResult, ui: UI) -> None:
    ui["inform"](f"\n{result.label}: {result.correct_count}/{result.total_questions}, avg {result.average_time_ms // 1000}s")
    for c in result.category_breakdown:
        ui["inform"](f"  {category_label(c.category)}: {c.correct}/{c.total}, avg {c.average_time_ms // 1000}s")


def _print_plan(sm: SessionManager, plan, ui: UI) -> None:
    suffix = " (random fallback)" if plan.fallback else ""
    ui["inform"](f"{plan.kind} session: {len(plan.question_ids)} questions{suffix}")
    for q in _questions(sm, plan.question_ids):
        ui["inform"](f"  {q.id}  {q.category:<9} {'*' * q.difficulty}")


def _parse_categories(raw: str) -> List[str]:
    cats = [c.strip() for c in raw.split(",") if c.strip()]
    if not cats:
        raise ValueError("--categories needs at least one category, e.g. bar,pie")
    return cats


def _cmd_stats(sm: SessionManager, days: int, ui: UI) -> None:
    from analytics import AnalyticsConfig, attempts_frame, category_stats, daily_stats, latest_frame, today_stats, weak_categories
    from datetime import datetime

    acfg = AnalyticsConfig.from_config(sm.cfg)
    now = datetime.now().astimezone()
    df = attempts_frame(sm.attempts.all_attempts(), sm.catalog.questions(), sm.target_times())
    today = today_stats(df, now)
    ui["inform"](
        f"Today: {today['questions_answered']} answered, {today['correct_count']} correct, "
        f"{today['study_time_ms'] // 60000} min"
    )
    daily = daily_stats(df, days or acfg.window_days, now)
    if not daily.empty:
        ui["inform"]("\nDaily:")
        ui["inform"](daily.to_string(index=False))
    cats = category_stats(latest_frame(df))
    if not cats.empty:
        ui["inform"]("\nBy category:")
        ui["inform"](cats.to_string(index=False))
        weak = weak_categories(cats, acfg.weak_accuracy)
        for row in weak.itertuples(index=False):
            ui["inform"](f"Weak: {category_label(row.category)} at {row.accuracy:.0%}")


def _cmd_plot(sm: SessionManager, out: Path, ui: UI) -> int:
    from analytics import AnalyticsConfig, attempts_frame, category_stats, daily_stats, ewma_by_day, latest_frame
    from analytics import plot_category_accuracy, plot_daily_trend, plot_time_vs_target
    from datetime import datetime

    acfg = AnalyticsConfig.from_config(sm.cfg)
    df = attempts_frame(sm.attempts.all_attempts(), sm.catalog.questions(), sm.target_times())
    if df.empty:
        ui["inform"]("No attempts recorded yet.")
        return 0
    out.mkdir(parents=True, exist_ok=True)
    daily = daily_stats(df, acfg.window_days, datetime.now().astimezone())
    if not daily.empty:
        daily = ewma_by_day(daily, "accuracy", acfg.smoothing_span)
    plot_daily_trend(daily, save_path=out / "daily_accuracy.png")
    plot_category_accuracy(category_stats(latest_frame(df)), threshold=acfg.weak_accuracy, save_path=out / "category_accuracy.png")
    plot_time_vs_target(df, save_path=out / "time_vs_target.png")
    df.to_csv(out / "attempts_snapshot.csv", index=False)
    ui["inform"](f"Reports saved to: {out.resolve()}")
    return 0


def _parse_target(values: List[str]) -> Dict[str, int]:
    targets: Dict[str, int] = {}
    for token in values:
        try:
            cat, sec = token.split("=", 1)
            targets[cat.strip()] = int(sec)
        except ValueError:
            raise ValueError(f"Invalid target '{token}'. Use category=seconds, e.g. bar=40") from None
    return targets


def main(argv: list[str] | None = None, ui: UI | None = None) -> int:
    ui = ui or _default_ui()
    p = argparse.ArgumentParser(prog="gabstudy", description="GAB Study review scheduler")
    p.add_argument("--version", action="version", version=f"gabstudy {__version__}")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--data-dir", dest="data_dir", default=None, help="Directory for Parquet history")
    p.add_argument("--catalog", default=None, help="Path to YAML question catalog")
    p.add_argument("--explain", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("list-categories")

    qp = sub.add_parser("quick")
    qp.add_argument("--duration", type=int, default=None, help="Target session length in seconds")
    qp.add_argument("--play", action="store_true")
    for name in ("review", "speed", "random", "bookmarked"):
        sp = sub.add_parser(name)
        sp.add_argument("--count", type=int, default=None)
        sp.add_argument("--play", action="store_true")
    cp = sub.add_parser("category")
    cp.add_argument("--category", required=True, choices=sorted(CATEGORY_MAP))
    cp.add_argument("--count", type=int, default=None)
    cp.add_argument("--play", action="store_true")

    wp = sub.add_parser("weakness", help="Timed test over your weakest questions")
    wp.add_argument("--count", type=int, default=None)
    wp.add_argument("--minutes", type=int, default=int(SESSION_DEFAULTS["weakness"]["time_limit_min"]))

    tp = sub.add_parser("test", help="Timed test from a preset, or a custom one")
    tp.add_argument("--preset", default=None, choices=sorted(TEST_PRESETS))
    tp.add_argument("--categories", default=None, help="Comma-separated categories for a custom test")
    tp.add_argument("--count", type=int, default=None, help="Questions in a custom test")
    tp.add_argument("--minutes", type=int, default=None, help="Time limit of a custom test")

    sub.add_parser("resume", help="Continue the last interrupted session")

    sub.add_parser("recommend")

    ap = sub.add_parser("answer")
    ap.add_argument("--question", required=True)
    ap.add_argument("--choice", required=True, type=int, help="0-based option index")
    ap.add_argument("--ms", required=True, type=int, help="Elapsed time in milliseconds")

    notep = sub.add_parser("note", help="Show or edit a question's bookmark, mistake tags and memo")
    notep.add_argument("--question", required=True)
    mark = notep.add_mutually_exclusive_group()
    mark.add_argument("--bookmark", dest="bookmarked", action="store_const", const=True, default=None)
    mark.add_argument("--unbookmark", dest="bookmarked", action="store_const", const=False)
    notep.add_argument("--tag", action="append", default=[], choices=sorted(MISTAKE_TAGS))
    notep.add_argument("--untag", action="append", default=[], choices=sorted(MISTAKE_TAGS))
    notep.add_argument("--memo", default=None)

    st = sub.add_parser("stats")
    st.add_argument("--days", type=int, default=None)

    pp = sub.add_parser("plot")
    pp.add_argument("--out", default="reports")

    sp = sub.add_parser("settings")
    sp.add_argument("--target", action="append", default=[], help="category=seconds override (repeatable)")
    sp.add_argument("--clear-targets", action="store_true")
    sp.add_argument("--resume-timer", dest="resume_timer", choices=["continue", "reset"], default=None)

    rp = sub.add_parser("reset")
    rp.add_argument("--tests", action="store_true", help="Also delete test history")

    ep = sub.add_parser("export")
    ep.add_argument("--out", default="reports/attempts.ndjson", help="NDJSON file to write")

    args = p.parse_args(argv)
    seed_if_needed()
    if args.explain:
        from .explain import enable as explain_enable
        explain_enable(True)

    try:
        sm = _build_manager(args)

        if args.cmd == "list-categories":
            targets = sm.target_times()
            for c in CATEGORIES:
                ui["inform"](f"{c.id}: {c.label} | target {targets.get(c.id, c.target_time_sec)}s")
            return 0

        if args.cmd in PRACTICE_KINDS:
            plan = sm.compose(
                args.cmd,
                duration_s=getattr(args, "duration", None),
                count=getattr(args, "count", None),
                category=getattr(args, "category", None),
            )
            if args.cmd == "bookmarked" and not plan.question_ids:
                ui["inform"]("No bookmarked questions.")
                return 0
            _print_plan(sm, plan, ui)
            if args.play and plan.question_ids:
                state = sm.new_session_state(plan.kind, plan.question_ids, label=f"{plan.kind} session")
                summary = play_session(sm, state, ui)
                if not summary["paused"]:
                    ui["inform"](f"\nScore: {summary['correct']}/{summary['total']}")
            return 0

        if args.cmd == "weakness":
            if args.minutes <= 0:
                raise ValueError("--minutes must be > 0")
            plan = sm.compose("weakness", count=args.count)
            label = str(SESSION_DEFAULTS["weakness"]["label"])
            _run_test(sm, plan.question_ids, ui, label=label, time_limit_s=args.minutes * 60)
            return 0

        if args.cmd == "test":
            custom = args.categories is not None or args.count is not None or args.minutes is not None
            if custom and args.preset is not None:
                raise ValueError("--preset cannot be combined with --categories/--count/--minutes")
            if custom:
                defaults = SESSION_DEFAULTS["custom"]
                cats = _parse_categories(args.categories) if args.categories is not None else None
                count = args.count if args.count is not None else int(defaults["count"])
                plan = sm.compose_test(count, categories=cats)
                label = str(defaults["label"])
                minutes = args.minutes if args.minutes is not None else int(defaults["time_limit_min"])
            else:
                preset = get_test_preset(args.preset or "half")
                plan = sm.compose_test(int(preset["questions"]), allow_short=True)
                label = str(preset["label"])
                minutes = int(preset["time_limit_min"])
            if minutes <= 0:
                raise ValueError("--minutes must be > 0")
            _run_test(sm, plan.question_ids, ui, label=label, time_limit_s=minutes * 60)
            return 0

        if args.cmd == "resume":
            state = sm.resume()
            if state is None:
                ui["inform"]("No session to resume.")
                return 0
            ui["inform"](
                f"Resuming {state.label or state.kind}: question {state.current_index + 1}/{len(state.question_ids)}, "
                f"{state.elapsed_ms // 1000}s elapsed"
            )
            if state.is_test:
                result = play_test(sm, state, ui)
                if result is not None:
                    _print_result(result, ui)
            else:
                summary = play_session(sm, state, ui)
                if not summary["paused"]:
                    ui["inform"](f"\nScore: {summary['correct']}/{summary['total']}")
            return 0

        if args.cmd == "recommend":
            recs = sm.recommendations()
            if not recs:
                ui["inform"]("Nothing to recommend right now.")
            for r in recs:
                ui["inform"](f"- {r.title} (~{r.estimated_minutes} min): {r.reason}")
            return 0

        if args.cmd == "answer":
            outcome = sm.record_answer(args.question, args.choice, args.ms)
            verdict = "correct" if outcome.attempt.is_correct else "wrong"
            ui["inform"](
                f"{args.question}: {verdict}, stage {outcome.entry.stage}, "
                f"next review {outcome.entry.next_review_at:%Y-%m-%d %H:%M}"
            )
            return 0

        if args.cmd == "note":
            changed = args.bookmarked is not None or args.tag or args.untag or args.memo is not None
            if changed:
                note = sm.update_note(
                    args.question,
                    bookmarked=args.bookmarked,
                    add_tags=args.tag,
                    remove_tags=args.untag,
                    memo=args.memo,
                )
            else:
                note = sm.note(args.question)
            ui["inform"](f"{args.question}: {_format_note(note)}")
            return 0

        if args.cmd == "stats":
            _cmd_stats(sm, args.days, ui)
            return 0

        if args.cmd == "plot":
            return _cmd_plot(sm, Path(args.out), ui)

        if args.cmd == "settings":
            current = sm.settings.get()
            targets = {} if args.clear_targets else dict(current.category_target_times)
            targets.update(_parse_target(args.target))
            update: Dict[str, Any] = {"category_target_times": targets}
            if args.resume_timer is not None:
                update["resume_timer_behavior"] = args.resume_timer
            sm.settings.save(current.model_copy(update=update))
            ui["inform"](sm.settings.get().model_dump_json(indent=2))
            return 0

        if args.cmd == "reset":
            from storage.store import reset_learning_data, reset_test_history

            data_dir = sm.attempts.data_dir
            reset_learning_data(data_dir)
            if args.tests:
                reset_test_history(data_dir)
            ui["inform"]("Learning data cleared.")
            return 0

        if args.cmd == "export":
            from storage.store import export_ndjson

            out = Path(args.out)
            export_ndjson(sm.attempts.frame(), out)
            ui["inform"](f"Attempts exported to: {out}")
            return 0
    except (GabStudyError, ValueError, KeyError, ValidationError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
