"""Download progress example.

Serves a payload from a mock server and downloads it to a file, reporting
progress as the chunks are written. When the server does not declare the
length of the body, only the number of bytes written is reported.

# Launch the example

python -m examples.download_progress.app /tmp/payload.bin

"""

import sys
from pathlib import Path
from typing import List

from httpcall import DownloadProgress, MockResponder, RequestExecutor, StaticResponse

PAYLOAD = b"httpcall" * 1024


def describe(progress: DownloadProgress) -> str:
    fraction = progress.fraction
    if fraction is None:
        return f"{progress.file.name}: {progress.current} bytes"
    return f"{progress.file.name}: {fraction:.0%} ({progress.current}/{progress.max} bytes)"


def download(target: Path) -> List[str]:
    lines: List[str] = []
    with MockResponder().start(
        StaticResponse(PAYLOAD, content_type="application/octet-stream")
    ) as mock:
        request = RequestExecutor(mock.url_for("/payload.bin"))
        request.fetch_file(target, lambda p: lines.append(describe(p)))
    return lines


if __name__ == "__main__":
    for line in download(Path(sys.argv[1])):
        print(line)
