import os
import shutil
from pathlib import Path

JOB_DIR_PREFIX = "import_"

BYTES_PER_MB = 1024 * 1024


def list_job_directories(artifacts_folder: Path) -> list[Path]:
    """
    List the per-job artifact folders (import_<job id>) directly inside artifacts_folder.

    Files, symlinks and folders not following the naming convention are ignored.
    """
    return [
        p
        for p in artifacts_folder.iterdir()
        if p.name.startswith(JOB_DIR_PREFIX) and p.is_dir() and not p.is_symlink()
    ]


def directory_size(folder: Path) -> int:
    """
    Total size in bytes of all files below folder, descending into subfolders.

    Symlinks are not followed, a link counts with its own size.
    Walks with an explicit stack, so tree depth is not bound by the recursion limit.
    """
    total = 0
    pending = [folder]
    while pending:
        with os.scandir(pending.pop()) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    pending.append(Path(entry.path))
                else:
                    total += entry.stat(follow_symlinks=False).st_size
    return total


def remove_directory(folder: Path, dry_run: bool = False) -> int:
    """
    Delete folder with all its contents and return the freed bytes.

    The size is computed before anything is touched, in dry-run mode nothing else happens.
    """
    size = directory_size(folder)
    if not dry_run:
        shutil.rmtree(folder)
    return size
