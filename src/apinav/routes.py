"""Guard generated page routes against reserved names.

Page emission places tag pages at ``<base>/<tag>`` and operation pages at
``<base>/<tag>/<operation>``.  The names in ``reserved`` (by default
``index`` and ``schemas``) are taken by generated overview pages, so a tag or
operation with one of those slugs would overwrite them.
"""

from __future__ import annotations

import logging
from typing import Iterable

from apinav.exceptions import RouteCollisionError
from apinav.models import DEFAULT_RESERVED_ROUTES, NormalizedSpec

logger = logging.getLogger(__name__)


def check_reserved_routes(
    spec: NormalizedSpec, reserved: Iterable[str] = DEFAULT_RESERVED_ROUTES
) -> None:
    """Raise if any tag or operation slug equals a reserved route name.

    Raises:
        RouteCollisionError: Naming the first colliding tag or operation.
    """
    reserved_names = {name for name in reserved if name}
    for tag in spec.tags:
        if tag.slug in reserved_names:
            message = (
                f'Tag slug "{tag.slug}" collides with a generated route. '
                "Rename the tag or exclude it."
            )
            logger.error(message)
            raise RouteCollisionError(message, tag.slug)
        for operation in tag.operations:
            if operation.slug in reserved_names:
                message = (
                    f'Operation slug "{operation.slug}" under tag "{tag.slug}" collides '
                    "with a generated route. Provide a different operationId."
                )
                logger.error(message)
                raise RouteCollisionError(message, operation.slug)
