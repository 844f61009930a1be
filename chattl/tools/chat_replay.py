from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx


def emit(message: str = "") -> None:
    print(message, flush=True)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Replay chat lines into a running chattl service and report where "
            "translations stall (filtering, provider errors, or delivery)."
        )
    )
    parser.add_argument(
        "--base-url",
        default="http://127.0.0.1:8000",
        help="Service base URL (default: http://127.0.0.1:8000)",
    )
    parser.add_argument(
        "--file",
        help="Chat log with one 'channel|sender|text' line per message ('#' lines ignored)",
    )
    parser.add_argument(
        "--message",
        action="append",
        default=[],
        help="Inline 'channel|sender|text' message; may be repeated",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=5.0,
        help="Seconds to wait for translations after the last message (default: 5)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.5,
        help="Polling interval in seconds (default: 0.5)",
    )
    return parser.parse_args(argv)


@dataclass(frozen=True)
class ChatLine:
    channel_type: str
    sender: str
    text: str

    def to_body(self) -> dict[str, Any]:
        return {"channel_type": self.channel_type, "sender": self.sender, "text": self.text}


@dataclass
class Snapshot:
    events_received: int = 0
    jobs_dispatched: int = 0
    jobs_succeeded: int = 0
    jobs_failed: int = 0
    jobs_skipped: int = 0
    provider_configured: bool = False
    last_error: str | None = None
    recent_texts: list[str] | None = None


def parse_chat_line(raw: str) -> ChatLine | None:
    line = raw.strip()
    if not line or line.startswith("#"):
        return None

    parts = line.split("|", 2)
    if len(parts) != 3 or not parts[0].strip() or not parts[2].strip():
        return None
    return ChatLine(parts[0].strip().lower(), parts[1].strip(), parts[2].strip())


def load_chat_lines(path: str | None, inline: list[str]) -> list[ChatLine]:
    raw_lines: list[str] = []
    if path:
        file_path = Path(path).expanduser()
        if file_path.exists():
            raw_lines.extend(file_path.read_text(encoding="utf-8").splitlines())
        else:
            emit(f"chat log not found: {file_path}")
    raw_lines.extend(inline)

    lines: list[ChatLine] = []
    for raw in raw_lines:
        parsed = parse_chat_line(raw)
        if parsed is not None:
            lines.append(parsed)
    return lines


def _to_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key, 0)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def fetch_snapshot(client: httpx.Client, base_url: str) -> Snapshot:
    status = client.get(f"{base_url}/translations/status").json()
    recent = client.get(f"{base_url}/translations/recent", params={"limit": 8}).json()

    texts: list[str] = []
    results = recent.get("results", [])
    if isinstance(results, list):
        for item in results:
            if isinstance(item, dict) and isinstance(item.get("display_text"), str):
                texts.append(item["display_text"])

    last_error = status.get("last_error")
    return Snapshot(
        events_received=_to_int(status, "events_received"),
        jobs_dispatched=_to_int(status, "jobs_dispatched"),
        jobs_succeeded=_to_int(status, "jobs_succeeded"),
        jobs_failed=_to_int(status, "jobs_failed"),
        jobs_skipped=_to_int(status, "jobs_skipped"),
        provider_configured=bool(status.get("provider_configured")),
        last_error=last_error if isinstance(last_error, str) else None,
        recent_texts=texts,
    )


def diagnose(start: Snapshot, end: Snapshot, outcomes: dict[str, int]) -> str:
    d_events = end.events_received - start.events_received
    d_jobs = end.jobs_dispatched - start.jobs_dispatched
    d_ok = end.jobs_succeeded - start.jobs_succeeded
    d_failed = end.jobs_failed - start.jobs_failed
    d_skipped = end.jobs_skipped - start.jobs_skipped

    if d_events <= 0:
        return "HOST ISSUE: the service did not receive any chat events."
    if not end.provider_configured:
        return "CONFIGURATION ISSUE: OpenRouter API key or model is missing."
    if d_jobs <= 0:
        filtered = ", ".join(f"{name}={count}" for name, count in sorted(outcomes.items()))
        return f"FILTERED: events arrived but none produced a job ({filtered})."
    if d_ok <= 0 and d_failed > 0:
        return f"PROVIDER ISSUE: every job failed. last_error={end.last_error!r}"
    if d_ok <= 0 and d_skipped > 0:
        return "SKIPPED: jobs ran but were skipped (empty input or classifier)."
    if d_ok < d_jobs - d_skipped:
        return (
            "PARTIAL: some jobs are still running or failed. "
            f"ok={d_ok} failed={d_failed} last_error={end.last_error!r}"
        )
    return "TRANSLATION RUNNING: every dispatched job delivered a result."


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    base_url = args.base_url.rstrip("/")
    interval = max(0.1, args.interval)
    lines = load_chat_lines(args.file, args.message)
    if not lines:
        emit("no chat lines to replay; pass --file or --message 'channel|sender|text'")
        return 2

    emit(f"chat replay started (base_url={base_url}, messages={len(lines)})")

    with httpx.Client(timeout=4.0) as client:
        try:
            health = client.get(f"{base_url}/health")
            health.raise_for_status()
        except httpx.HTTPError as exc:
            emit(f"failed to reach service health endpoint: {exc}")
            return 2

        first = fetch_snapshot(client, base_url)
        outcomes: dict[str, int] = {}
        for index, line in enumerate(lines, start=1):
            response = client.post(f"{base_url}/chat/events", json=line.to_body())
            outcome = response.json().get("outcome", f"http_{response.status_code}")
            outcomes[outcome] = outcomes.get(outcome, 0) + 1
            emit(f"[{index:02d}] {line.channel_type} {line.sender}: {line.text} -> {outcome}")

        deadline = time.monotonic() + max(0.0, args.wait)
        prev = fetch_snapshot(client, base_url)
        while time.monotonic() < deadline:
            if prev.jobs_succeeded + prev.jobs_failed + prev.jobs_skipped >= prev.jobs_dispatched:
                break
            time.sleep(interval)
            prev = fetch_snapshot(client, base_url)

        emit("")
        emit(f"VERDICT: {diagnose(first, prev, outcomes)}")
        if prev.recent_texts:
            emit(f"recent_texts: {prev.recent_texts[:5]}")
        if prev.last_error:
            emit(f"last_translation_error: {prev.last_error}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
