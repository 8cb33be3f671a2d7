"""Command line entry point.

    reelsmith info <project> [--width N] list the saved timeline and its ruler
    reelsmith preview <project> [-o X]   render the timeline to a video file
    reelsmith watch <project> <job_id>   follow a generation job until done
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication

from .config import get_settings
from .logging_setup import configure_logging
from .core.duration import timeline_scale
from .core.project import EditorStateStore
from .core.timeline import TimelineModel
from .services.export import ExportSettings, assemble_timeline_preview, export_video, specs_for
from .services.video_api import OpenAIVideoClient, VideoApiError
from .utils.timefmt import format_ruler, format_time, ruler_ticks

logger = logging.getLogger("reelsmith")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reelsmith", description="Timeline editor for generated video clips")
    parser.add_argument("--workspace", help="projects folder (default from settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="show the saved timeline of a project")
    info.add_argument("project")
    info.add_argument("--width", type=int, default=1000, help="timeline width in pixels for the ruler")

    preview = sub.add_parser("preview", help="render the project timeline")
    preview.add_argument("project")
    preview.add_argument("-o", "--output", help="also copy the preview here")
    preview.add_argument("--fps", type=int, default=30)

    watch = sub.add_parser("watch", help="poll a generation job until it finishes")
    watch.add_argument("project")
    watch.add_argument("job_id")
    return parser


def _load_timeline(store: EditorStateStore, project: str) -> TimelineModel:
    model = TimelineModel()
    model.load_state(store.load_editor_state(project))
    return model


def cmd_info(store: EditorStateStore, args) -> int:
    model = _load_timeline(store, args.project)
    if not model.clips:
        print(f"{args.project}: empty timeline")
        return 0
    for c in model.clips:
        marker = "*" if c.id == model.selected_clip_id else " "
        transition = f"  -> {c.transition_type} {c.transition:.2f}s" if c.transition_type else ""
        print(
            f"{marker} {format_time(c.position)}  {format_time(c.duration)}  "
            f"{c.name} [{format_time(c.trim_start)}-{format_time(c.trim_end)}]{transition}"
        )
    total = model.total_duration
    print(f"total {format_time(total)}")
    ticks = ruler_ticks(total, timeline_scale(total, args.width))
    print("ruler " + " ".join(format_ruler(t) for t in ticks))
    return 0


def cmd_preview(store: EditorStateStore, args) -> int:
    model = _load_timeline(store, args.project)
    if not model.clips:
        logger.error("project %s has no clips", args.project)
        return 1
    target = store.paths(args.project).ensure().preview_file()
    path = assemble_timeline_preview(specs_for(model.clips), target, ExportSettings(fps=args.fps))
    print(path)
    if args.output:
        print(export_video(path, args.output))
    return 0


def cmd_watch(store: EditorStateStore, args) -> int:
    from .session import EditingSession

    settings = get_settings()
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    session = EditingSession(
        args.project,
        settings=settings,
        store=store,
        client=OpenAIVideoClient.from_settings(settings),
    )
    tracker = session.jobs
    result = {"code": 1}

    def on_status(job_id, record):
        if job_id != args.job_id:
            return
        print(f"{record.status.value} {record.progress:.0f}%")
        if record.resolved_media_ref:
            print(record.resolved_media_ref)
            result["code"] = 0
            app.quit()
        elif record.error:
            print(record.error, file=sys.stderr)
            app.quit()

    def on_download_failed(job_id, message):
        if job_id == args.job_id:
            print(f"download failed: {message}", file=sys.stderr)
            app.quit()

    tracker.statusChanged.connect(on_status)
    tracker.downloadFailed.connect(on_download_failed)
    tracker.observe(args.job_id)
    app.exec()
    tracker.release(args.job_id)
    return result["code"]


COMMANDS = {"info": cmd_info, "preview": cmd_preview, "watch": cmd_watch}


def run(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    configure_logging()
    workspace = args.workspace or get_settings().workspace_dir
    store = EditorStateStore(workspace)
    try:
        return COMMANDS[args.command](store, args)
    except (OSError, ValueError, VideoApiError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(run())
