#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from abc import ABC

from idbridgeservicelayer.context import Context


class Service(ABC):  # noqa: B024
    """Base class for services."""

    def __init__(self, context: Context):
        self.context = context
