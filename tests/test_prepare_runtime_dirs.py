from pathlib import Path

from scripts import prepare_runtime_dirs as prepare


def test_ensure_directories_reports_only_new(tmp_path: Path) -> None:
    (tmp_path / "state").mkdir()

    created = prepare.ensure_directories(tmp_path, prepare.RUNTIME_DIRS)

    assert sorted(path.name for path in created) == ["logs", "public", "scratch"]
    assert all((tmp_path / name).is_dir() for name in ("public", "scratch", "state", "logs"))
    assert prepare.ensure_directories(tmp_path, prepare.RUNTIME_DIRS) == []
