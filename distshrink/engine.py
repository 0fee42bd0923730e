"""The optimization pass: harvest, allocate, rewrite.

Files are read and scanned in parallel, the allocator runs once over the
combined harvest, and the frozen rename maps are then shared read-only by the
rewrite workers. A worker failure only ever costs the file it was working on.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import rcssmin

from distshrink import shader
from distshrink.errors import FileFailure
from distshrink.fold import calc, oklch
from distshrink.mangle import css, js, lists, markup, scope
from distshrink.mangle.allocator import allocate
from distshrink.mangle.harvest import Harvest, combine, file_kind, scan_file
from distshrink.mangle.model import Category, RenameMap, Renames
from distshrink.settings import Settings
from distshrink.utils.files import find_files, read_text, write_if_smaller
from distshrink.utils.naming import ALPHABET_ALPHA, ALPHABET_LOWER_DIGITS, gated

logger = logging.getLogger(__name__)


@dataclass
class OptimizeResult:
    """Outcome of one pass.

    ``per_file_saved`` is keyed by the path relative to the root and only
    lists files that shrank.
    """

    bytes_saved: int = 0
    per_file_saved: Dict[str, int] = field(default_factory=dict)
    failures: List[FileFailure] = field(default_factory=list)
    mapped: Dict[str, int] = field(default_factory=dict)


def allocate_renames(harvest: Harvest, settings: Settings) -> Renames:
    def build(enabled: bool, category: Category, alphabet: str = ALPHABET_ALPHA,
              render: Optional[Callable[[str], str]] = None) -> RenameMap:
        if not enabled:
            return RenameMap.empty(category)
        return allocate(category, harvest.records(category), harvest.reserved_names(category), alphabet, render)

    return Renames(
        custom_properties=build(settings.mangle_custom_properties, Category.CUSTOM_PROPERTY,
                                render=lambda short: "--" + short),
        classes=build(settings.mangle_classes, Category.CLASS),
        ids=build(settings.mangle_ids, Category.ID),
        scope_ids=build(settings.mangle_scope_ids, Category.SCOPE_ID, ALPHABET_LOWER_DIGITS),
        scope_id_prefix=settings.scope_id_prefix,
    )


def rewrite_literal(value: str, renames: Renames) -> str:
    """Rename what a JS string or template segment refers to."""
    value = css.replace_custom_properties(value, renames.custom_properties)
    if markup.is_markup(value):
        value = markup.rewrite_tags(value, renames)
    renamed = lists.replace_class_literal(value, renames.classes)
    if renamed != value:
        return renamed
    return lists.replace_selector_ids(value, renames.ids)


def optimize_stylesheet(text: str, renames: Renames, settings: Settings) -> str:
    result = gated(
        text,
        lambda t: css.rewrite_stylesheet(t, renames.classes, renames.ids, renames.custom_properties),
        "css renames",
    )
    if settings.fold_calc:
        result = gated(result, calc.fold_stylesheet, "calc")
    if settings.fold_oklch:
        result = gated(result, oklch.fold_stylesheet, "oklch")
    if settings.minify_css:
        result = gated(result, rcssmin.cssmin, "rcssmin")
    return result


def optimize_script(text: str, renames: Renames, settings: Settings) -> str:
    result = text
    if renames:
        result = gated(result, lambda t: js.rewrite_literals(t, lambda v: rewrite_literal(v, renames)), "js renames")
    if settings.optimize_shaders:
        result = gated(result, shader.optimize_shaders, "shaders")
    return result


def optimize_document(text: str, renames: Renames, settings: Settings) -> str:
    return gated(
        text,
        lambda t: markup.rewrite_document(
            t,
            renames,
            lambda body: optimize_script(body, renames, settings),
            lambda body: optimize_stylesheet(body, renames, settings),
        ),
        "html",
    )


_OPTIMIZERS = {
    "css": optimize_stylesheet,
    "js": optimize_script,
    "html": optimize_document,
}


def optimize_text(path: str, text: str, renames: Renames, settings: Settings) -> str:
    """Run every transform that applies to one file and return the best text."""
    optimizer = _OPTIMIZERS.get(file_kind(path))
    result = optimizer(text, renames, settings) if optimizer else text
    if renames.scope_ids:
        result = gated(
            result,
            lambda t: scope.replace_scope_ids(t, renames.scope_id_prefix, renames.scope_ids),
            "scope ids",
        )
    return result


def _relative(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()


def optimize(root: Union[str, Path], settings: Optional[Settings] = None) -> OptimizeResult:
    """Shrink every HTML, CSS and JS file under ``root`` in place.

    Raises ``NotADirectoryError`` when ``root`` is not a directory; every
    other failure is recorded in the result.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"not a directory: {root}")
    settings = settings or Settings()
    result = OptimizeResult()
    paths = find_files(root, settings.extensions)
    if not paths:
        logger.info("no files to optimize under %s", root)
        return result

    max_workers = settings.max_workers or os.cpu_count() or 2
    texts: Dict[Path, str] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(read_text, path): path for path in paths}
        for fut in as_completed(futures):
            path = futures[fut]
            try:
                texts[path] = fut.result()
            except (OSError, UnicodeDecodeError) as exc:
                logger.error("%s: cannot read: %s", _relative(root, path), exc)
                result.failures.append(FileFailure(_relative(root, path), "read", str(exc)))

        scans = []
        futures = {
            executor.submit(scan_file, _relative(root, path), text, settings.scope_id_prefix): path
            for path, text in texts.items()
        }
        for fut in as_completed(futures):
            path = futures[fut]
            try:
                scans.append(fut.result())
            except Exception as exc:
                logger.exception("%s: harvest crashed", _relative(root, path))
                result.failures.append(FileFailure(_relative(root, path), "harvest", str(exc)))

        harvest = combine(scans, settings.custom_property_min_length)
        renames = allocate_renames(harvest, settings)
        for name in ("custom_properties", "classes", "ids", "scope_ids"):
            rename_map = getattr(renames, name)
            result.mapped[rename_map.category.value] = len(rename_map)
        logger.info(
            "mapped %d custom properties, %d classes, %d ids and %d scope ids",
            len(renames.custom_properties), len(renames.classes), len(renames.ids), len(renames.scope_ids),
        )

        futures = {
            executor.submit(optimize_text, _relative(root, path), text, renames, settings): path
            for path, text in texts.items()
        }
        rewritten: Dict[Path, str] = {}
        for fut in as_completed(futures):
            path = futures[fut]
            try:
                rewritten[path] = fut.result()
            except Exception as exc:
                logger.exception("%s: rewrite crashed", _relative(root, path))
                result.failures.append(FileFailure(_relative(root, path), "rewrite", str(exc)))

    for path in sorted(rewritten):
        relative = _relative(root, path)
        try:
            saved = write_if_smaller(path, texts[path], rewritten[path], settings.dry_run)
        except OSError as exc:
            logger.error("%s: cannot write: %s", relative, exc)
            result.failures.append(FileFailure(relative, "write", str(exc)))
            continue
        if saved:
            result.per_file_saved[relative] = saved
            result.bytes_saved += saved
            logger.info("%s: saved %d bytes", relative, saved)

    result.failures.sort(key=lambda failure: failure.path)
    logger.info("total saved: %d bytes", result.bytes_saved)
    return result
