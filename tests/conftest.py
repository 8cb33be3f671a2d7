import numpy as np
import pytest
from moviepy import AudioClip, ColorClip
from PySide6.QtCore import QCoreApplication, QEventLoop, QTimer


class ManualRunner:
    """Task runner that only runs work when the test says so."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, on_success, on_failure=None):
        self.pending.append((fn, on_success, on_failure))

    def run_next(self):
        fn, on_success, on_failure = self.pending.pop(0)
        try:
            result = fn()
        except Exception as e:
            if on_failure is None:
                raise
            on_failure(e)
            return
        on_success(result)

    def run_at(self, index):
        self.pending.insert(0, self.pending.pop(index))
        self.run_next()

    def run_all(self):
        while self.pending:
            self.run_next()


@pytest.fixture(scope="session")
def qapp():
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def runner():
    return ManualRunner()


@pytest.fixture
def spin(qapp):
    def _spin(ms=30):
        loop = QEventLoop()
        QTimer.singleShot(ms, loop.quit)
        loop.exec()

    return _spin


def _tone(t):
    wave = 0.5 * np.sin(2 * np.pi * 440 * np.asarray(t))
    return np.array([wave, wave]).T


@pytest.fixture
def make_video(tmp_path):
    """Write a small solid-colour mp4 (optionally with a tone) and return its path."""

    def _make(name="clip.mp4", duration=1.0, color=(0, 255, 0), size=(32, 32), audio=False):
        path = tmp_path / name
        clip = ColorClip(size=size, color=color, duration=duration)
        if audio:
            clip = clip.with_audio(AudioClip(_tone, duration=duration, fps=22050))
        clip.write_videofile(str(path), fps=24, audio=audio, logger=None)
        clip.close()
        return path

    return _make
