"""Repository-to-forum import engine.

Public API for publishing the files of a repository as NodeBB topics,
one topic per file, in a category tree that mirrors the directories.

Architecture
------------
The forum is the only state store. Each topic carries a filename tag
and a ``customData`` bag with the content fingerprint; a later pass
finds the topic by ``(tag, category)`` and compares fingerprints to
decide between update and skip.

Modules:

- ``engine``     -- ``ImportEngine``: orchestrates a full pass.
- ``categories`` -- ``CategoryResolver``: directory path to category id.
- ``codec``      -- path normalization, tags, reversible path encoding.
- ``chunker``    -- splits oversized content into post-sized pieces.
- ``hashing``    -- line-ending normalization and content fingerprints.
- ``posts``      -- post body rendering (code fences, continuation markers).
- ``toc``        -- index document rendering.
- ``models``     -- ``SourceFile``, ``TopicMetadata``, ``ImportResult``,
  ``ImportReport`` and the other data contracts.
- ``reporter``   -- human-readable and JSON report formatting.

Usage example
-------------
::

    import asyncio
    from umber_cli.config_schema import ImportSettings
    from umber_cli.core.client import NodeBBClient
    from umber_cli.importer import ImportContext, ImportEngine, format_import_report

    context = ImportContext(
        client=NodeBBClient(config),
        settings=ImportSettings(master_category_name="Docs"),
        repo_url="https://github.com/owner/repo",
    )
    report = asyncio.run(ImportEngine(context).run(files, dry_run=True))
    print(format_import_report(report))
"""

from .categories import CategoryResolver
from .engine import ImportContext, ImportEngine
from .models import (
    ImportAction,
    ImportReport,
    ImportResult,
    RemoteCategory,
    RemoteTopic,
    SourceFile,
    TocEntry,
    TopicMetadata,
)
from .reporter import (
    format_dry_run_preview,
    format_import_report,
    report_to_json,
)

__all__ = [
    "CategoryResolver",
    "ImportAction",
    "ImportContext",
    "ImportEngine",
    "ImportReport",
    "ImportResult",
    "RemoteCategory",
    "RemoteTopic",
    "SourceFile",
    "TocEntry",
    "TopicMetadata",
    "format_dry_run_preview",
    "format_import_report",
    "report_to_json",
]
