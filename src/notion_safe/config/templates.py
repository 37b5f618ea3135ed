"""Starter configuration written by ``notion-safe config init``.

Example
-------
>>> from pathlib import Path
>>> written = write_config_template(Path("/tmp/notion-safe.yaml"))
>>> written.exists()
True
"""
from __future__ import annotations

from pathlib import Path

CONFIG_TEMPLATE = """\
# notion-safe configuration
# -------------------------
# Rules are evaluated in order; the first rule whose scope contains the
# target resource decides. Rules are never merged.
#
# Permissions:
#   page:read, page:update, page:create
#   database:read, database:query, database:create
#   block:read, block:append, block:delete
version: "1"

rules:
  - name: Example - Read only page
    # Applies to this page and everything beneath it.
    page_id: 00000000-0000-0000-0000-000000000000
    permissions: [page:read, database:read, database:query, block:read]

  - name: Example - Read + block append only
    # Reading and adding blocks, but no property updates or deletes.
    page_id: 11111111-1111-1111-1111-111111111111
    permissions: [page:read, database:read, database:query, block:read, block:append]

  - name: Example - Database with conditional write
    # Applies to the database and the pages filed directly in it.
    database_id: 22222222-2222-2222-2222-222222222222
    permissions: [page:read, database:read, database:query, block:read, page:update, block:append]
    # Optional: write operations also require this property value.
    condition:
      property: Assignee
      type: people          # people, select, multi_select, status, checkbox
      equals: user-id       # user id for people, option name for others, true/false for checkbox

  - name: Example - Database query and create only
    database_id: 33333333-3333-3333-3333-333333333333
    permissions: [database:read, database:query, database:create]

  - name: Example - Full access page
    page_id: 44444444-4444-4444-4444-444444444444
    permissions:
      - page:read
      - page:update
      - page:create
      - database:read
      - database:query
      - database:create
      - block:read
      - block:append
      - block:delete

# When no rule matches: "deny" or "read" (read-class operations only).
default_permission: deny

cache:
  ttl_seconds: 600
  max_depth: 10

audit:
  enabled: false
  log_path: ./notion_safe_audit.jsonl
"""


def write_config_template(output_path: Path, overwrite: bool = False) -> Path:
    """Write :data:`CONFIG_TEMPLATE` to *output_path*.

    Parent directories are created automatically.

    Parameters
    ----------
    output_path:
        Destination file path.
    overwrite:
        Replace an existing file instead of refusing.

    Returns
    -------
    Path
        The absolute path of the written file.

    Raises
    ------
    FileExistsError
        If the file exists and ``overwrite`` is False.
    """
    output_path = Path(output_path)
    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Config file already exists: {output_path}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    return output_path.resolve()
