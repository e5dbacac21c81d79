from typing import Final

ID: Final[str] = "_id"
"""The document identity field."""

REV: Final[str] = "_rev"
"""The document revision field, assigned by the database on every write."""

RESERVED_PREFIX: Final[str] = "_"
"""Fields starting with this prefix are not part of the wire form (except `ID` and `REV`)."""

DESIGN_PREFIX: Final[str] = "_design/"
"""Prefix of design document ids, which host the views."""

KEY: Final[str] = "key"
START_KEY: Final[str] = "startkey"
END_KEY: Final[str] = "endkey"
START_KEY_ALIAS: Final[str] = "start_key"
END_KEY_ALIAS: Final[str] = "end_key"
"""CouchDB 2+ spellings of `START_KEY` and `END_KEY`."""

DESCENDING: Final[str] = "descending"
LIMIT: Final[str] = "limit"
SKIP: Final[str] = "skip"
INCLUDE_DOCS: Final[str] = "include_docs"

JSON_ENCODED_PARAMS: Final[frozenset[str]] = frozenset({KEY, START_KEY, END_KEY, START_KEY_ALIAS, END_KEY_ALIAS})
"""View parameters that are always sent JSON encoded, even when they are strings."""

SORT_ASC: Final[str] = "asc"
SORT_DSC: Final[str] = "dsc"
