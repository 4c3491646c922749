"""
Stand-in for the yt-dlp executable used by the tests.

Behavior is selected by the URL (the last argument):
    .../ok        two progress lines and some noise, exit 0
    .../fail      "ERROR: unsupported format" on stderr, exit 1
    .../slow      one progress line, then waits for $FAKE_YTDLP_RELEASE to exist
`--dump-json` prints a small info document, or fails for URLs ending in /fail.
"""

import os
import sys
import json
import time


def main(argv):
    url = argv[-1]

    if '--dump-json' in argv:
        if url.endswith('/fail'):
            print("ERROR: Unsupported URL: " + url, file=sys.stderr)
            return 1
        print(json.dumps({
            'title': 'Fake Video',
            'thumbnail': 'https://example.com/thumb.jpg',
            'formats': [
                {'format_id': '140', 'ext': 'm4a', 'resolution': 'audio only',
                 'vcodec': 'none', 'acodec': 'mp4a.40.2', 'filesize': 3453587, 'tbr': 129.5},
                {'format_id': '22', 'ext': 'mp4', 'resolution': '1280x720',
                 'vcodec': 'avc1', 'acodec': 'mp4a', 'filesize': None, 'tbr': None},
            ],
            'duration': 212,
        }))
        return 0

    if url.endswith('/fail'):
        print("[youtube] abc: Downloading webpage", flush=True)
        print("ERROR: unsupported format", file=sys.stderr, flush=True)
        return 1

    if url.endswith('/slow'):
        print("[download]  12.0% of ~10.00MiB at 1.5MiB/s ETA 00:20", flush=True)
        release = os.environ.get('FAKE_YTDLP_RELEASE', '')
        deadline = time.monotonic() + 20
        while time.monotonic() < deadline and not (release and os.path.exists(release)):
            time.sleep(0.05)
        print("[download]  100.0% of ~10.00MiB at 2.0MiB/s ETA 00:00", flush=True)
        return 0

    print("[youtube] abc: Downloading webpage", flush=True)
    print("[download] Destination: Fake Video [abc].mp4", flush=True)
    print("[download]  45.2% of ~10.00MiB at 1.5MiB/s ETA 00:07", flush=True)
    print("[download]  90.0% of 10.00MiB at 2.1MiB/s ETA 00:01", flush=True)
    print("[download] 100% of 10.00MiB in 00:05", flush=True)
    return 0


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
