"""Pytest configuration and fixtures."""

import base64
import subprocess
import tempfile
import threading
import zipfile
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

SAMPLE_FB2 = f"""<?xml version="1.0" encoding="utf-8"?>
<FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0" xmlns:l="http://www.w3.org/1999/xlink">
  <description>
    <title-info>
      <genre>sf</genre>
      <author><first-name>Ivan</first-name><last-name>Petrov</last-name></author>
      <book-title>Sample Book</book-title>
      <lang>ru</lang>
      <coverpage><image l:href="#cover.png"/></coverpage>
    </title-info>
    <document-info><id>sample-book-1</id></document-info>
  </description>
  <body>
    <title><p>Sample Book</p></title>
    <section>
      <title><p>Chapter One</p></title>
      <p>First <emphasis>chapter</emphasis> text.</p>
      <section>
        <title><p>Part A</p></title>
        <p>Nested text<a l:href="#n1">1</a>.</p>
      </section>
    </section>
    <section>
      <title><p>Chapter Two</p></title>
      <image l:href="#pic.png"/>
      <p>Second chapter text.</p>
    </section>
  </body>
  <body name="notes">
    <section id="n1"><title><p>1</p></title><p>A note.</p></section>
  </body>
  <binary id="cover.png" content-type="image/png">{base64.b64encode(PNG_BYTES).decode()}</binary>
  <binary id="pic.png" content-type="image/png">
    {base64.b64encode(PNG_BYTES).decode()}
  </binary>
</FictionBook>
"""


class FakeKindleGen:
    """Stand-in for ``subprocess.run`` of the kindlegen adapter.

    Writes ``<input dir>/<-o name>`` like kindlegen does, unless the input
    contains a marker registered with ``fail_on``. Thread-safe, since jobs
    call it from worker threads.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.cwds: list[Path] = []
        self.fail_markers: set[bytes] = set()
        self.runs = 0
        self._lock = threading.Lock()

    def fail_on(self, marker: bytes) -> None:
        """Produce no output for inputs containing ``marker``."""
        self.fail_markers.add(marker)

    def __call__(self, cmd, cwd=None, **kwargs):
        input_path = Path(cmd[-3])
        output_name = cmd[-1]

        with self._lock:
            self.calls.append(list(cmd))
            self.cwds.append(Path(cwd) if cwd else input_path.parent)
            self.runs += 1
            run_number = self.runs

        data = input_path.read_bytes()
        if any(marker in data for marker in self.fail_markers):
            return subprocess.CompletedProcess(cmd, 2, stdout="Error(core): input is broken\n")

        (input_path.parent / output_name).write_bytes(b"MOBI-%d:" % run_number + data[:32])
        return subprocess.CompletedProcess(
            cmd, 0, stdout="Info(prcgen): MOBI file built successfully\n"
        )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_kindlegen(monkeypatch) -> FakeKindleGen:
    """Replace the kindlegen subprocess with FakeKindleGen."""
    fake = FakeKindleGen()
    monkeypatch.setattr("mobibatch.converters.kindlegen.subprocess.run", fake)
    return fake


@pytest.fixture
def workspace_root(tmp_path, monkeypatch) -> Path:
    """Redirect job workspaces into a dedicated directory that tests can inspect."""
    root = tmp_path / "workspaces"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def sample_fb2_text() -> str:
    """FB2 document with nested sections, a note and two images."""
    return SAMPLE_FB2


@pytest.fixture
def make_book():
    """Factory writing e-book sources: ``make_book(path, kind="epub"|"fb2", zipped=False)``."""

    def _make(
        path: Path, kind: str = "epub", zipped: bool = False, payload: bytes | None = None
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if payload is None:
            payload = SAMPLE_FB2.encode() if kind == "fb2" else b"PK-epub:" + path.name.encode()

        if zipped:
            with zipfile.ZipFile(path, "w") as zf:
                zf.writestr("readme.txt", "not a book")
                zf.writestr(f"inner/book.{kind}", payload)
        else:
            path.write_bytes(payload)
        return path

    return _make


@pytest.fixture
def png_bytes() -> bytes:
    """Decoded image embedded twice in the sample FB2."""
    return PNG_BYTES
