#!env python

import argparse
import asyncio
import sys

from transcribe_tracks.env import load_transcribe_env
from transcribe_tracks.errors import TranscribeError
from transcribe_tracks.meetings import find_meeting, list_dates, list_meetings
from transcribe_tracks.pipeline import TranscriptionPipeline
from transcribe_tracks.store import ObjectStore
from transcribe_tracks.web.config import Settings
from transcribe_tracks.web.jobs import JobRegistry, JobState

load_transcribe_env()

POLL_INTERVAL = 0.5


def open_store(settings):
    return ObjectStore(settings.store)


def cmd_dates(settings, args):
    for date in list_dates(open_store(settings)):
        print(date)


def cmd_meetings(settings, args):
    meetings = list_meetings(open_store(settings), args.date)
    if not meetings:
        print(f"No meetings found for {args.date}")
        return
    for m in meetings:
        print(f"{m.id}\t{m.room_label}\t{m.meeting_time}\tspeakers={m.speaker_count}\ttracks={m.track_count}")


async def _run_and_follow(pipeline, registry, meeting_id):
    job_id = registry.create(meeting_id)
    task = asyncio.create_task(pipeline.execute(meeting_id, job_id))

    printed = 0
    while True:
        finished = task.done()
        job = registry.get(job_id)
        if len(job.log) > printed:
            sys.stdout.write(job.log[printed:])
            sys.stdout.flush()
            printed = len(job.log)
        if finished:
            break
        await asyncio.sleep(POLL_INTERVAL)

    return registry.get(job_id)


def cmd_run(settings, args):
    if args.timestamps is not None:
        settings.include_timestamps = args.timestamps
    if args.no_speaker:
        settings.include_speaker = False
    if args.output_dir:
        settings.output_dir = args.output_dir

    store = open_store(settings)
    meeting = find_meeting(store, args.meeting_id)
    if meeting:
        print(f"Meeting: {meeting.room_label} {meeting.meeting_time} "
              f"({meeting.speaker_count} speakers, {meeting.track_count} tracks)")

    registry = JobRegistry()
    pipeline = TranscriptionPipeline(settings, store, registry)
    job = asyncio.run(_run_and_follow(pipeline, registry, args.meeting_id))

    if job.state == JobState.DONE:
        print(f"Saved transcript to: {job.output_path}")
        return 0
    print(f"Transcription failed: {job.error}", file=sys.stderr)
    return 1


def cmd_check(settings, args):
    open_store(settings).check()
    print("Object store connection OK")


def cmd_serve(settings, args):
    from transcribe_tracks.web.app import run_server
    run_server(host=args.host, port=args.port)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Turn per-speaker meeting tracks in an S3 bucket into one transcript."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("dates", help="List recording dates")

    p_meetings = sub.add_parser("meetings", help="List meetings for a date")
    p_meetings.add_argument("date", help="Recording date prefix, e.g. 2024-05-01")

    p_run = sub.add_parser("run", help="Transcribe a meeting and wait for it")
    p_run.add_argument("meeting_id", help="date/roomId/meetingTime")
    p_run.add_argument("--timestamps", action="store_true", default=None, help="Prefix lines with HH:MM:SS")
    p_run.add_argument("--no-speaker", action="store_true", help="Leave out speaker names")
    p_run.add_argument("--output-dir", "-o", default=None, help="Directory for the transcript")

    sub.add_parser("check", help="Check the object store connection")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)

    args = parser.parse_args()
    settings = Settings.load()

    commands = {
        "dates": cmd_dates,
        "meetings": cmd_meetings,
        "run": cmd_run,
        "check": cmd_check,
        "serve": cmd_serve,
    }
    try:
        status = commands[args.command](settings, args)
    except TranscribeError as e:
        print(f"Error: {e}", file=sys.stderr)
        status = 1
    sys.exit(status or 0)
