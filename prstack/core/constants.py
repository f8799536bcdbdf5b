"""Trailer keys and other shared constants."""

COMMIT_ID_TRAILER = "Prstack-Commit-Id"
GROUP_TRAILER = "Prstack-Group"

# Boundary-marker trailers written by older releases. Never written now,
# only stripped whenever group membership is removed.
LEGACY_GROUP_START_TRAILER = "Prstack-Group-Start"
LEGACY_GROUP_END_TRAILER = "Prstack-Group-End"
LEGACY_GROUP_TITLE_TRAILER = "Prstack-Group-Title"

GROUP_TRAILERS = (
    GROUP_TRAILER,
    LEGACY_GROUP_START_TRAILER,
    LEGACY_GROUP_END_TRAILER,
    LEGACY_GROUP_TITLE_TRAILER,
)

SHORT_HASH_LENGTH = 8
