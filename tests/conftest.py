"""Shared test fixtures for the Claude usage monitor."""

import os
import sys
from pathlib import Path

import pytest

WORKSPACE = "/home/wiz/projects/myapp"
PROJECT_DIR_NAME = "-home-wiz-projects-myapp"


@pytest.fixture(scope="session")
def qapp():
    """Create a QGuiApplication for tests that need Qt."""
    os.environ["QT_QPA_PLATFORM"] = "offscreen"
    from PySide6.QtGui import QGuiApplication

    app = QGuiApplication.instance()
    if app is None:
        app = QGuiApplication(sys.argv or ["test"])
    yield app


@pytest.fixture
def isolated_settings(qapp, tmp_path):
    """Point QSettings at a throwaway INI directory."""
    from PySide6.QtCore import QSettings
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path / "config"))
    yield


@pytest.fixture
def log_root(tmp_path) -> Path:
    """A temporary Claude projects directory."""
    root = tmp_path / ".claude" / "projects"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def project_dir(log_root) -> Path:
    """The project directory for WORKSPACE under log_root."""
    d = log_root / PROJECT_DIR_NAME
    d.mkdir()
    return d


@pytest.fixture
def data_dir(tmp_path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    return d
