#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

"""Helpers for configuration validation.

Especially work-arounds for broken `formencode` behaviour.
"""

import re

import formencode
import formencode.validators


class UnicodeString(formencode.FancyValidator):
    """A FormEncode `UnicodeString` validator that works.

    The one in `formencode` is... weird.
    """

    not_empty = None
    accept_python = False
    messages = {
        "noneType": "The input must be a Unicode string (not None)",
        "badType": (
            "The input must be a Unicode string (not a %(type)s: %(value)r)"
        ),
    }

    def _validate(self, value, state=None):
        if not isinstance(value, str):
            raise formencode.Invalid(
                self.message(
                    "badType",
                    state,
                    value=value,
                    type=type(value).__qualname__,
                ),
                value,
                state,
            )

    _validate_python = _validate
    _validate_other = _validate

    def empty_value(self, value):
        return ""


class HeaderName(UnicodeString):
    """An HTTP header name, normalised to lower case."""

    header_re = re.compile(r"^[A-Za-z0-9-]+$")
    messages = {
        "badHeader": "%(value)r is not a valid HTTP header name",
    }

    def _convert_to_python(self, value, state=None):
        if isinstance(value, str) and self.header_re.match(value):
            return value.lower()
        raise formencode.Invalid(
            self.message("badHeader", state, value=value), value, state
        )


class OneWayStringBool(formencode.validators.StringBool):
    """A `StringBool` that doesn't convert a boolean back into a string.

    Used for "true" and "false" values, but doesn't convert a boolean back
    to a string.
    """

    def from_python(self, value):
        """Do nothing."""
        return value
