"""Shared fixtures for backup tests."""

import os
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner


def write_tree(root: Path, files: dict) -> Path:
    """Create ``files`` ({relative path: text}) under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def set_mtime(path: Path, seconds: float) -> None:
    os.utime(path, (seconds, seconds))


def list_files(root: Path) -> set:
    """Relative paths of every file under ``root``."""
    return {p.relative_to(root).as_posix() for p in root.rglob('*') if p.is_file()}


@pytest.fixture
def source_tree(tmp_path):
    """A small source folder named 'a'."""
    return write_tree(tmp_path / 'a', {
        'y.txt': 'hello',
        'x.log': 'log line',
        'docs/readme.md': '# readme',
        'docs/cache/blob.bin': 'cached',
        'src/main.py': 'print(1)',
        'src/nested/deep/file.txt': 'deep',
    })


@pytest.fixture
def backup_root(tmp_path):
    """An existing, empty destination folder."""
    root = tmp_path / 'b'
    root.mkdir()
    return root


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, source_tree, backup_root):
    """A config file with one regular and one optional target."""
    path = tmp_path / 'config.yaml'
    data = {
        'threads': 3,
        'color': False,
        'fancy_text': False,
        'runtime_folder': str(tmp_path / 'runtime'),
        'target': [
            {
                'tag': 'docs',
                'path': str(source_tree),
                'target_path': str(backup_root),
                'ignore_files': ['r#\\.log$'],
            },
            {
                'tag': 'extra',
                'path': str(source_tree / 'y.txt'),
                'target_path': str(backup_root),
                'optional': True,
            },
        ],
    }
    path.write_text(yaml.safe_dump(data))
    return path
