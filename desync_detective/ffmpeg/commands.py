"""Helpers that wrap FFmpeg/FFprobe invocations."""
from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
import sys
import tempfile
import threading
import time
from pathlib import Path
from typing import List, Optional

from ..errors import ProbeError

logger = logging.getLogger(__name__)

VIDEO_SELECTOR = 'v'
AUDIO_SELECTOR = 'a'


def locate_tool(name: str) -> str:
    """Resolve an FFmpeg suite binary on PATH or raise `ProbeError`."""

    path = shutil.which(name)
    if not path:
        raise ProbeError(f"'{name}' is not on PATH; install FFmpeg or extend PATH")
    return path


def frames_csv_command(ffprobe_exe: str, source: str, selector: str, read_intervals: str) -> List[str]:
    return [
        ffprobe_exe,
        '-v',
        'quiet',
        '-analyzeduration',
        '5M',
        '-probesize',
        '5M',
        '-i',
        source,
        '-select_streams',
        selector,
        '-show_frames',
        '-of',
        'csv=p=0',
        '-read_intervals',
        read_intervals,
    ]


def first_frame_command(ffprobe_exe: str, source: str, selector: str) -> List[str]:
    return [
        ffprobe_exe,
        '-v',
        'quiet',
        '-show_entries',
        'frame=stream_index,pts_time',
        '-select_streams',
        f'{selector}:0',
        '-read_intervals',
        '%+1',
        '-of',
        'json',
        '-i',
        source,
    ]


def stream_info_command(ffprobe_exe: str, source: str) -> List[str]:
    return [
        ffprobe_exe,
        '-analyzeduration',
        '10M',
        '-probesize',
        '10M',
        source,
    ]


def record_command(ffmpeg_exe: str, uri: str, length: int, target: Path, *, align: bool) -> List[str]:
    """Re-encode `length` seconds of `uri` into `target`."""

    video_filter = 'null'
    audio_filter = 'asetnsamples=320'
    if align:
        audio_filter += ',asetpts=PTS-STARTPTS'
        video_filter = 'setpts=PTS-STARTPTS'
    cmd = [ffmpeg_exe, '-hide_banner', '-nostats', '-nostdin', '-y']
    if 'rtsp' in uri:
        cmd += ['-rtsp_transport', 'tcp']
    cmd += [
        '-i',
        uri,
        '-c:v',
        'libx264',
        '-c:a',
        'pcm_mulaw',
        '-vf',
        video_filter,
        '-af',
        audio_filter,
        '-t',
        str(length),
        '-progress',
        'pipe:1',
        str(target),
    ]
    return cmd


def temp_clip_path(temp_dir: Path) -> Path:
    """Unique clip name derived from the current microsecond timestamp."""

    stamp = str(time.time_ns() // 1000)
    return temp_dir / f"{hashlib.md5(stamp.encode('ascii')).hexdigest()}.mkv"


class FFprobeRunner:
    """Subprocess-backed probe collaborator used by the analysis pipeline."""

    def __init__(
        self,
        ffprobe_exe: str,
        ffmpeg_exe: Optional[str] = None,
        *,
        temp_dir: Path = Path('temp'),
        timeout_s: Optional[float] = None,
    ) -> None:
        self.ffprobe_exe = ffprobe_exe
        self.ffmpeg_exe = ffmpeg_exe
        self.temp_dir = temp_dir
        self.timeout_s = timeout_s

    def probe_frames(self, source: str, selector: str, read_intervals: str) -> str:
        return self._run(frames_csv_command(self.ffprobe_exe, source, selector, read_intervals))

    def probe_first_frame(self, source: str, selector: str) -> str:
        return self._run(first_frame_command(self.ffprobe_exe, source, selector))

    def probe_stream_info(self, source: str) -> str:
        # the stream listing is written to stderr
        return self._run(stream_info_command(self.ffprobe_exe, source), merge_stderr=True)

    def record_clip(self, uri: str, length: int, *, align: bool = False) -> Path:
        if not self.ffmpeg_exe:
            raise ProbeError('FFmpeg executable not configured; cannot record a slice')
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        target = temp_clip_path(self.temp_dir)
        logger.info('Generate temp file from %s -> %s', uri, target)
        cmd = record_command(self.ffmpeg_exe, uri, length, target, align=align)
        logger.debug('Record command: %s', subprocess.list2cmdline(cmd))
        timeout_s = None if self.timeout_s is None else float(length) + self.timeout_s
        try:
            run_ffmpeg_with_progress(cmd, float(length), label='Recording', timeout_s=timeout_s)
        except ProbeError:
            target.unlink(missing_ok=True)
            raise
        return target

    def _run(self, cmd: List[str], *, merge_stderr: bool = False) -> str:
        logger.debug('Probe command: %s', subprocess.list2cmdline(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProbeError(f'ffprobe timed out after {exc.timeout}s') from exc
        except OSError as exc:
            raise ProbeError(f'ffprobe could not be started: {exc}') from exc
        if proc.returncode != 0:
            raise ProbeError(
                f'ffprobe failed (rc={proc.returncode})',
                returncode=proc.returncode,
                output=proc.stdout or '',
            )
        return proc.stdout or ''


def run_ffmpeg_with_progress(
    cmd: List[str],
    duration_s: Optional[float],
    label: str,
    timeout_s: Optional[float] = None,
) -> None:
    """Run FFmpeg with -progress and keep a single-line progress indicator.

    stderr is spooled to a temporary file so a chatty input can never fill a
    pipe nobody reads. When `timeout_s` is set the process is killed once it
    elapses and a `ProbeError` is raised.
    """

    with tempfile.TemporaryFile(mode='w+', encoding='utf-8', errors='replace') as err_file:
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=err_file,
                stdin=subprocess.DEVNULL,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            raise ProbeError(f'FFmpeg could not be started: {exc}') from exc

        expired = threading.Event()
        killer: Optional[threading.Timer] = None
        if timeout_s is not None:
            def _expire() -> None:
                expired.set()
                proc.kill()

            killer = threading.Timer(timeout_s, _expire)
            killer.daemon = True
            killer.start()

        last_line = ''
        try:
            last_line = _follow_progress(proc, duration_s, label)
            rc = proc.wait()
        finally:
            if killer is not None:
                killer.cancel()
            if proc.stdout:
                proc.stdout.close()
            sys.stdout.write("\r" + " " * 80 + "\r")
            sys.stdout.flush()

        if expired.is_set():
            raise ProbeError(f'FFmpeg timed out after {timeout_s}s', returncode=rc, output=_read_back(err_file))
        if rc != 0:
            raise ProbeError(
                f"FFmpeg failed (rc={rc}). Last progress line: {last_line}",
                returncode=rc,
                output=_read_back(err_file),
            )


def _follow_progress(proc: subprocess.Popen, duration_s: Optional[float], label: str) -> str:
    """Consume `-progress pipe:1` output until `progress=end`; return the last line seen."""

    last_line = ''
    out_time_ms: Optional[int] = None
    if proc.stdout is None:
        return last_line
    for line in proc.stdout:
        line = line.strip()
        if not line:
            continue
        last_line = line
        if line.startswith('out_time_ms='):
            try:
                out_time_ms = int(line.split('=', 1)[1])
            except ValueError:
                continue
        elif line == 'progress=end':
            break

        msg = _render_progress(duration_s, out_time_ms)
        if msg:
            sys.stdout.write(f"\r{label}: {msg}   ")
            sys.stdout.flush()
    return last_line


def _read_back(handle) -> str:
    handle.seek(0)
    return handle.read()


def _render_progress(duration_s: Optional[float], out_time_ms: Optional[int]) -> str:
    if out_time_ms is None:
        return ''
    seconds = out_time_ms / 1_000_000.0
    if duration_s and duration_s > 0:
        pct = max(0.0, min(100.0, (seconds / duration_s) * 100.0))
        return f"{seconds:6.1f}s of {duration_s:.1f}s ({pct:.2f}%)"
    return f"{seconds:6.1f}s"
