"""Context lifecycle service.

Sequences the core pieces the way every command needs them: load and
hydrate the stored contexts, mutate the set, persist the list and the
per-context fragments, then rewrite the managed include block of the global
git config.  Nothing here prompts or prints; callers present the returned
values and the raised errors.

Every mutation holds the lock of the context list from the initial read
until the global config has been rewritten, so concurrent mutations through
the same :class:`FileCoordinator` are applied one after another.

Multi-file sequences are not transactional.  A failure part-way through
leaves earlier steps (backup, fragments, list) in place.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import (
    ContextValidationError,
    FilePermissionError,
    MalformedDataError,
    NotFoundError,
    PathSecurityError,
)
from .files import FileCoordinator
from .git import get_active_config, get_remote_url
from .gitconfig import ConfigTransformer, LineConfigTransformer
from .models import (
    Context,
    ContextTemplate,
    ImportFailure,
    ImportResult,
    list_templates,
)
from .paths import GitContextPaths, ensure_export_path_allowed, resolve_fragment_path
from .patterns import find_context_for_path, find_context_for_url

logger = logging.getLogger(__name__)


@dataclass
class _StoredContexts:
    """The context list as read from disk.

    Records that cannot be hydrated are kept verbatim in ``unreadable`` and
    written back after the usable contexts, so a save never drops them.
    """

    contexts: list[Context]
    unreadable: list[Any] = field(default_factory=list)

    def records(self) -> list[Any]:
        return [context.to_record() for context in self.contexts] + self.unreadable


class ContextManager:
    """Manages stored contexts and keeps the global git config in sync.

    The constructor accepts plain values; no environment variables are read.
    """

    def __init__(
        self,
        paths: GitContextPaths,
        *,
        files: FileCoordinator | None = None,
        transformer: ConfigTransformer | None = None,
    ) -> None:
        self.paths = paths
        self.files = files if files is not None else FileCoordinator()
        self.transformer = transformer if transformer is not None else LineConfigTransformer()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def ensure_config_dir(self) -> None:
        await self.files.ensure_dir(self.paths.config_dir)

    def _editing(self) -> AbstractAsyncContextManager[None]:
        """Hold the context list lock across a read-modify-write."""
        return self.files.locks.hold(self.paths.contexts_file)

    async def _read_stored(self, *, held: bool = False) -> _StoredContexts:
        try:
            records = await self.files.load_json(self.paths.contexts_file, held=held)
        except MalformedDataError as exc:
            logger.warning("Ignoring malformed contexts file: %s", exc)
            return _StoredContexts([])

        if not isinstance(records, list):
            logger.warning("Ignoring contexts file %s: not a list", self.paths.contexts_file)
            return _StoredContexts([])

        stored = _StoredContexts([])
        for record in records:
            try:
                stored.contexts.append(Context.from_record(record))
            except MalformedDataError as exc:
                logger.warning("Skipping stored context, it is kept as-is: %s", exc)
                stored.unreadable.append(record)
        return stored

    async def _write_stored(self, stored: _StoredContexts) -> None:
        # Callers hold the context list lock
        await self.files.save_json(self.paths.contexts_file, stored.records(), held=True)

    async def load_contexts(self) -> list[Context]:
        """Return the stored contexts.

        A missing or unreadable-as-JSON list is treated as empty and
        individual unusable records are skipped, both with a warning.
        Skipped records stay in the file untouched by later mutations.
        """
        return (await self._read_stored()).contexts

    async def save_contexts(self, contexts: Sequence[Context]) -> None:
        """Overwrite the stored list with exactly *contexts*."""
        await self.files.save_json(
            self.paths.contexts_file,
            [context.to_record() for context in contexts],
        )

    async def get_context(self, name: str) -> Context:
        for context in await self.load_contexts():
            if context.name == name:
                return context
        raise NotFoundError(f'Context "{name}" not found')

    async def read_fragment(self, name: str) -> str | None:
        """Return the on-disk fragment of context *name*, if any."""
        return await self.files.load_named_fragment(self.paths.config_dir, name)

    async def sync_global_config(self, contexts: Sequence[Context]) -> str:
        """Regenerate the managed include block of the global git config."""
        updated = await self.files.transform_text(
            self.paths.git_config_path,
            lambda text: self.transformer.update(text, contexts, self.paths.config_dir),
            owner_only=True,
        )
        logger.info("Updated %s for %d contexts", self.paths.git_config_path, len(contexts))
        return updated

    async def _write_fragment(self, context: Context) -> Path:
        return await self.files.save_named_fragment(
            self.paths.config_dir,
            context.name,
            context.to_config_fragment(),
        )

    async def _check_permissions(self, *extra: Path) -> None:
        await self.files.check_permissions(
            [self.paths.git_config_path, self.paths.config_dir, self.paths.contexts_file, *extra]
        )

    @staticmethod
    def _require_valid(context: Context) -> None:
        result = context.validate_fields()
        if not result.is_valid:
            raise ContextValidationError(result.errors)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def setup(self, contexts: Sequence[Context]) -> Path | None:
        """Replace the whole context set, backing up the global config first.

        Returns the backup path, or ``None`` if there was no config to back up.
        """
        for context in contexts:
            self._require_valid(context)
        names = [context.name for context in contexts]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ContextValidationError(
                [f'Context "{name}" is defined more than once' for name in duplicates]
            )

        async with self._editing():
            await self._check_permissions()
            await self.ensure_config_dir()

            backup_path = await self.files.backup(self.paths.git_config_path)
            if backup_path:
                logger.info("Backed up existing git config to %s", backup_path)

            for context in contexts:
                await self._write_fragment(context)

            await self._write_stored(_StoredContexts(list(contexts)))
            await self.sync_global_config(contexts)

        return backup_path

    async def add_context(self, context: Context) -> Context:
        """Store a new context.

        Raises :class:`ContextValidationError` for a duplicate name or invalid
        fields; nothing is written in either case.
        """
        async with self._editing():
            stored = await self._read_stored(held=True)
            if any(existing.name == context.name for existing in stored.contexts):
                raise ContextValidationError(f'Context "{context.name}" already exists')
            self._require_valid(context)

            await self._check_permissions(
                resolve_fragment_path(self.paths.config_dir, context.name)
            )
            await self.ensure_config_dir()
            await self._write_fragment(context)

            stored.contexts.append(context)
            await self._write_stored(stored)
            await self.sync_global_config(stored.contexts)

        logger.info('Context "%s" added', context.name)
        return context

    async def update_context(self, context: Context) -> Context:
        """Replace the stored context that has the same name as *context*."""
        async with self._editing():
            stored = await self._read_stored(held=True)
            index = next(
                (i for i, existing in enumerate(stored.contexts) if existing.name == context.name),
                None,
            )
            if index is None:
                raise NotFoundError(f'Context "{context.name}" not found')
            self._require_valid(context)

            await self.ensure_config_dir()
            await self._write_fragment(context)

            stored.contexts[index] = context
            await self._write_stored(stored)
            await self.sync_global_config(stored.contexts)

        logger.info('Context "%s" updated', context.name)
        return context

    async def remove_context(self, name: str) -> None:
        """Delete a context: fragment first, then the list entry, then the includes."""
        async with self._editing():
            stored = await self._read_stored(held=True)
            if not any(context.name == name for context in stored.contexts):
                raise NotFoundError(f'Context "{name}" not found')

            await self._check_permissions(resolve_fragment_path(self.paths.config_dir, name))
            await self.files.delete_named_fragment(self.paths.config_dir, name)

            stored.contexts = [context for context in stored.contexts if context.name != name]
            await self._write_stored(stored)
            await self.sync_global_config(stored.contexts)

        logger.info('Context "%s" removed', name)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    async def apply(self, path: Path | str | None = None) -> Context | None:
        """Return the first context whose path patterns match *path* (default: cwd)."""
        current = os.fspath(path) if path is not None else os.getcwd()
        contexts = await self.load_contexts()
        return find_context_for_path(contexts, current, os.fspath(self.paths.home_dir))

    async def detect_from_url(
        self,
        path: Path | str | None = None,
        remote: str = "origin",
    ) -> tuple[str | None, Context | None]:
        """Match the remote URL of the repository at *path* against URL patterns.

        Returns ``(url, context)``; *url* is ``None`` when there is no remote
        and *context* is ``None`` when nothing matches.
        """
        url = await get_remote_url(path if path is not None else os.getcwd(), remote)
        if not url:
            return None, None

        contexts = await self.load_contexts()
        return url, find_context_for_url(contexts, url)

    async def get_active_config(self, path: Path | str | None = None) -> dict[str, str]:
        """Return the git settings in effect at *path* (default: cwd).

        Lets a caller compare the identity git will actually use with the
        context found by :meth:`apply` or :meth:`detect_from_url`.
        """
        return await get_active_config(path if path is not None else os.getcwd())

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def list_templates(self) -> list[ContextTemplate]:
        return list_templates()

    def context_from_template(self, name: str, template_name: str) -> Context:
        return Context.from_template(name, template_name)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    async def export_contexts(self, dest: Path | str) -> Path:
        """Write the stored contexts to *dest* as a JSON array.

        Raises :class:`PathSecurityError` if *dest* mentions the home or
        config directory.
        """
        ensure_export_path_allowed(dest, [self.paths.home_dir, self.paths.config_dir])

        contexts = await self.load_contexts()
        await self.files.save_json(dest, [context.to_record() for context in contexts])

        logger.info("Exported %d contexts to %s", len(contexts), dest)
        return Path(dest)

    async def import_contexts(
        self,
        src: Path | str,
        *,
        replace_existing: bool = False,
    ) -> ImportResult:
        """Merge contexts from an import file into the stored set.

        Invalid records and per-item write failures are collected in the
        result instead of aborting; items already written stay written.
        """
        records = await self.files.load_import(src)
        result = ImportResult()

        candidates: list[Context] = []
        for record in records:
            try:
                context = Context.from_record(record)
            except MalformedDataError as exc:
                name = record.get("name") if isinstance(record, dict) else None
                result.failures.append(
                    ImportFailure(name=str(name or "Unknown"), errors=[str(exc)])
                )
                continue

            validation = context.validate_fields()
            if not validation.is_valid:
                result.failures.append(ImportFailure(name=context.name, errors=validation.errors))
                continue
            candidates.append(context)

        if not candidates:
            logger.warning("No valid contexts found in %s", src)
            return result

        async with self._editing():
            stored = await self._read_stored(held=True)
            existing_names = {context.name for context in stored.contexts}
            await self.ensure_config_dir()

            for context in candidates:
                is_duplicate = context.name in existing_names
                if is_duplicate and not replace_existing:
                    result.skipped.append(context.name)
                    continue

                try:
                    await self._write_fragment(context)
                except (OSError, FilePermissionError, PathSecurityError) as exc:
                    logger.warning("Failed to import context %s: %s", context.name, exc)
                    result.failures.append(ImportFailure(name=context.name, errors=[str(exc)]))
                    continue

                if is_duplicate:
                    stored.contexts = [
                        c if c.name != context.name else context for c in stored.contexts
                    ]
                    result.replaced.append(context.name)
                else:
                    stored.contexts.append(context)
                    existing_names.add(context.name)
                result.imported.append(context.name)

            if result.imported:
                await self._write_stored(stored)
                await self.sync_global_config(stored.contexts)

        logger.info(
            "Imported %d contexts (replaced %d, skipped %d, failed %d)",
            len(result.imported),
            len(result.replaced),
            len(result.skipped),
            len(result.failures),
        )
        return result
