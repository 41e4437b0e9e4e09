import os
import time
from typing import Callable, Dict, Union

Tree = Dict[str, Union[str, "Tree"]]


def make_tree(root: str, tree: Tree) -> None:
    """Create files (str values) and directories (dict values) below root."""
    os.makedirs(root, exist_ok=True)
    for name, content in tree.items():
        path = os.path.join(root, name)
        if isinstance(content, dict):
            os.makedirs(path, exist_ok=True)
            make_tree(path, content)
        else:
            with open(path, "w") as f:
                f.write(content)


def set_mtime_ms(path: str, mtime_ms: int) -> None:
    ns = mtime_ms * 1_000_000
    os.utime(path, ns=(ns, ns))


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
