"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_session_resolutions_total: Dict[Tuple[str, str], int] = defaultdict(int)
_login_attempts_total: Dict[Tuple[str, str], int] = defaultdict(int)
_proxy_upstream_total: Dict[str, int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_session_resolution(*, realm: str, outcome: str) -> None:
    with _lock:
        _session_resolutions_total[(_normalize_label(realm), _normalize_label(outcome))] += 1


def record_login_attempt(*, realm: str, outcome: str) -> None:
    with _lock:
        _login_attempts_total[(_normalize_label(realm), _normalize_label(outcome))] += 1


def record_proxy_upstream(*, outcome: str) -> None:
    """Count proxied calls by upstream status class ("2xx", "5xx") or "network_error"."""

    with _lock:
        _proxy_upstream_total[_normalize_label(outcome)] += 1


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        session_total = dict(_session_resolutions_total)
        login_total = dict(_login_attempts_total)
        proxy_total = dict(_proxy_upstream_total)

    lines = [
        "# HELP cashmais_build_info Build metadata.",
        "# TYPE cashmais_build_info gauge",
        (
            f'cashmais_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP cashmais_process_uptime_seconds Process uptime in seconds.",
        "# TYPE cashmais_process_uptime_seconds gauge",
        f"cashmais_process_uptime_seconds {uptime:.6f}",
        "# HELP cashmais_http_requests_total Total HTTP requests.",
        "# TYPE cashmais_http_requests_total counter",
    ]

    for (method, path, status), value in sorted(http_total.items()):
        lines.append(
            (
                f'cashmais_http_requests_total{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}",status="{_escape_label(status)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP cashmais_http_request_duration_seconds Request duration summary.",
            "# TYPE cashmais_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'cashmais_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'cashmais_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP cashmais_session_resolutions_total Session lookups by realm and outcome.",
            "# TYPE cashmais_session_resolutions_total counter",
        ]
    )
    for (realm, outcome), value in sorted(session_total.items()):
        lines.append(
            f'cashmais_session_resolutions_total{{realm="{_escape_label(realm)}",'
            f'outcome="{_escape_label(outcome)}"}} {value}'
        )

    lines.extend(
        [
            "# HELP cashmais_login_attempts_total Login attempts by realm and outcome.",
            "# TYPE cashmais_login_attempts_total counter",
        ]
    )
    for (realm, outcome), value in sorted(login_total.items()):
        lines.append(
            f'cashmais_login_attempts_total{{realm="{_escape_label(realm)}",'
            f'outcome="{_escape_label(outcome)}"}} {value}'
        )

    lines.extend(
        [
            "# HELP cashmais_proxy_upstream_total Proxied upstream calls by outcome.",
            "# TYPE cashmais_proxy_upstream_total counter",
        ]
    )
    for outcome, value in sorted(proxy_total.items()):
        lines.append(f'cashmais_proxy_upstream_total{{outcome="{_escape_label(outcome)}"}} {value}')

    lines.append("")
    return "\n".join(lines)


def reset_metrics_for_tests() -> None:
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _session_resolutions_total.clear()
        _login_attempts_total.clear()
        _proxy_upstream_total.clear()
