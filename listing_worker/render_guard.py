"""
In-process guard against overlapping final renders of one project.

Two render requests for the same project would race on the same render
rows. This only covers a single worker process; multiple replicas still
rely on callers not double-submitting.
"""

import threading

_lock = threading.Lock()
_active_projects: set = set()


def acquire_project(project_id: str) -> bool:
    """
    Try to claim a project for rendering.
    Returns True if claimed, False if a render is already in progress.
    """
    with _lock:
        if project_id in _active_projects:
            return False
        _active_projects.add(project_id)
        return True


def release_project(project_id: str):
    """Release a project claim after the render finishes (success or failure)."""
    with _lock:
        _active_projects.discard(project_id)


def get_active_count() -> int:
    with _lock:
        return len(_active_projects)
