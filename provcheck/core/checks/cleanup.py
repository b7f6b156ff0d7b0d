from __future__ import annotations

import shutil
from typing import Iterable, List

from provcheck.core.modules.installation import list_installations


def delete_installations(roots: Iterable[str], *, logger=None) -> List[str]:
    """
    Remove every installation directory under the given roots. The roots
    themselves are kept. Returns the removed paths.
    """
    removed: List[str] = []
    for root in roots:
        for path in list_installations(root):
            shutil.rmtree(path)
            removed.append(path)
            if logger is not None:
                logger.info("Deleted installation %s", path)
    return removed
