"""AppleScript templates and an async ``osascript`` runner for System Events."""

from __future__ import annotations

import asyncio
import logging

from core.errors import AgentError, NoMatchingWindowError, PermissionDeniedError

logger = logging.getLogger("sb.applescript")

_PERMISSION_MARKERS = ("assistive access", "not authorized", "(-1743)", "(-25211)")
_MISSING_WINDOW_MARKERS = ("(-1728)", "can't get", "invalid index", "(-1719)")

FRONTMOST_SCRIPT = """\
tell application "System Events"
  set frontProc to first application process whose frontmost is true
  set appName to name of frontProc
  set winTitle to ""
  try
    set winTitle to name of front window of frontProc
    if winTitle is missing value then set winTitle to ""
  end try
end tell
return appName & tab & winTitle
"""

_GEOMETRY_SCRIPT = """\
set output to ""
tell application "System Events"
  repeat with proc in (every application process whose {selector})
    set procName to name of proc
    set winIndex to 0
    repeat with w in (every window of proc)
      set winIndex to winIndex + 1
      try
        set winTitle to name of w
        if winTitle is missing value then set winTitle to ""
        set {{px, py}} to position of w
        set {{sw, sh}} to size of w
        set isFull to false
        try
          set isFull to value of attribute "AXFullScreen" of w
        end try
        set output to output & procName & tab & winTitle & tab & winIndex & tab & px & tab & py & tab & sw & tab & sh & tab & isFull & linefeed
      end try
    end repeat
  end repeat
end tell
return output
"""

_SET_BOUNDS_SCRIPT = """\
tell application "System Events"
  tell application process "{app}"
    set targetWindow to {window_ref}
    set position of targetWindow to {{{x}, {y}}}
    set size of targetWindow to {{{width}, {height}}}
  end tell
end tell
"""

_ACTIVATE_SCRIPT = """\
tell application "{app}" to activate
"""

_RAISE_SCRIPT = """\
tell application "System Events"
  tell application process "{app}"
    set frontmost to true
    try
      perform action "AXRaise" of (first window whose name contains "{title}")
    end try
  end tell
end tell
"""


def escape_applescript_str(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


def geometry_script(app_name: str | None = None) -> str:
    if app_name:
        selector = f'name is "{escape_applescript_str(app_name)}"'
    else:
        selector = "visible is true"
    return _GEOMETRY_SCRIPT.format(selector=selector)


def set_bounds_script(app_name: str, title: str, index: int | None, bounds: tuple[int, int, int, int]) -> str:
    if title:
        window_ref = f'first window whose name is "{escape_applescript_str(title)}"'
    elif index:
        window_ref = f"window {int(index)}"
    else:
        window_ref = "window 1"
    x, y, width, height = bounds
    return _SET_BOUNDS_SCRIPT.format(
        app=escape_applescript_str(app_name),
        window_ref=window_ref,
        x=int(x),
        y=int(y),
        width=int(width),
        height=int(height),
    )


def activate_script(app_name: str, title: str | None = None) -> str:
    script = _ACTIVATE_SCRIPT.format(app=escape_applescript_str(app_name))
    if title:
        script += _RAISE_SCRIPT.format(
            app=escape_applescript_str(app_name), title=escape_applescript_str(title)
        )
    return script


def classify_failure(stderr: str) -> AgentError:
    """Map ``osascript`` error output onto the agent error taxonomy."""
    lowered = stderr.lower()
    if any(marker in lowered for marker in _PERMISSION_MARKERS):
        return PermissionDeniedError(f"Automation permission denied: {stderr}")
    if any(marker in lowered for marker in _MISSING_WINDOW_MARKERS):
        return NoMatchingWindowError(stderr)
    return AgentError(f"osascript failed: {stderr}")


async def run_osascript(script: str, timeout: float = 10.0) -> str:
    """Run an AppleScript and return its stripped stdout."""
    proc = await asyncio.create_subprocess_exec(
        "osascript",
        "-e",
        script,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise AgentError(f"osascript timed out after {timeout:.0f}s") from None

    err_text = stderr.decode("utf-8", errors="replace").strip()
    if proc.returncode != 0:
        logger.debug("osascript exit %s: %s", proc.returncode, err_text)
        raise classify_failure(err_text)
    return stdout.decode("utf-8", errors="replace").rstrip("\n")


def parse_frontmost(output: str) -> tuple[str, str] | None:
    if not output.strip():
        return None
    app_name, _, title = output.partition("\t")
    app_name = app_name.strip()
    if not app_name:
        return None
    return app_name, title.strip()


def parse_geometry_rows(output: str) -> list[dict[str, object]]:
    """Parse tab-delimited geometry rows; malformed rows are skipped."""
    rows: list[dict[str, object]] = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) != 8:
            continue
        try:
            rows.append(
                {
                    "app_name": parts[0],
                    "title": parts[1],
                    "index": int(parts[2]),
                    "x": int(float(parts[3])),
                    "y": int(float(parts[4])),
                    "width": int(float(parts[5])),
                    "height": int(float(parts[6])),
                    "fullscreen": parts[7].strip().lower() == "true",
                }
            )
        except ValueError:
            logger.debug("Skipping malformed geometry row: %r", line)
    return rows
