"""One acquisition run: resolve, fetch from cache or network, verify, output.

``acquire_one`` never raises for a per-crate failure; every error is turned
into a failed ``AcquisitionOutcome`` so sibling runs are unaffected.
"""
from __future__ import annotations

import logging
import shutil
import tarfile
import zlib
from typing import Optional, Sequence

from acquire import extract, fetcher
from acquire.errors import ChecksumMismatch, DownloadError, UnsafeArchiveEntry
from acquire.events import AcquisitionEvent, Emit, EventKind, discard
from acquire.integrity import verify_bytes
from acquire.models import AcquireOptions, AcquisitionOutcome, FailureKind, OutcomeKind
from common.logging_utils import extra_context, is_debug_enabled, Timer
from registry.cache import lookup_all
from registry.index import CorruptIndexFile, RegistryIndex, download_url
from versioning.models import PackageSpec, VersionRecord
from versioning.resolver import CrateVersionResolver

logger = logging.getLogger(__name__)


def default_output(record: VersionRecord, extract_archive: bool) -> str:
    """``<name>-<version>`` for extraction, ``<name>-<version>.crate`` otherwise."""
    return record.base_name if extract_archive else record.crate_filename


class _Run:
    """State of a single pipeline run; owned by one worker."""

    def __init__(self, spec: PackageSpec, emit: Emit):
        self.spec = spec
        self.subject = str(spec)
        self._emit = emit
        self.operation = "selecting version"

    def stage(self, kind: EventKind, message: str) -> None:
        self.operation = message
        self._emit(AcquisitionEvent(self.subject, kind, message))


def _output_from_cache(run: _Run, record: VersionRecord, cached: str, output: str, options: AcquireOptions) -> OutcomeKind:
    label = f"{record.name} {record.version}"
    if options.extract:
        run.stage(EventKind.EXTRACTING, f"extracting {label} to {output}")
        extract.unpack(cached, record.base_name, output)
        return OutcomeKind.EXTRACTED
    run.stage(EventKind.WRITING, f"writing {label} to {output}")
    shutil.copyfile(cached, output)
    return OutcomeKind.WRITTEN


def _output_from_download(run: _Run, record: VersionRecord, output: str, options: AcquireOptions) -> OutcomeKind:
    label = f"{record.name} {record.version}"
    url = download_url(record)
    run.stage(EventKind.DOWNLOADING, f"downloading {label}")
    data = fetcher.fetch(url, limit=options.size_limit)
    logger.debug("downloaded %s (%d bytes)", label, len(data))

    run.stage(EventKind.VERIFYING, f"verifying checksum of {label}")
    verify_bytes(data, record.checksum)
    logger.debug("verified checksum (%s)", record.checksum.hex())

    if options.extract:
        run.stage(EventKind.EXTRACTING, f"extracting {label} to {output}")
        extract.unpack(data, record.base_name, output)
        return OutcomeKind.EXTRACTED
    run.stage(EventKind.WRITING, f"writing {label} to {output}")
    with open(output, "wb") as fh:
        fh.write(data)
    return OutcomeKind.WRITTEN


def acquire_one(
    spec: PackageSpec,
    index: RegistryIndex,
    options: AcquireOptions,
    cache_dirs: Sequence[str] = (),
    emit: Optional[Emit] = None,
) -> AcquisitionOutcome:
    """Run the full pipeline for ``spec`` and return its terminal outcome."""
    run = _Run(spec, emit or discard)
    subject = run.subject
    record: Optional[VersionRecord] = None

    def fail(kind: FailureKind, reason: str) -> AcquisitionOutcome:
        run.stage(EventKind.FAILED, reason)
        return AcquisitionOutcome.failed(subject, kind, reason, record=record)

    with Timer() as t:
        try:
            run.stage(EventKind.SELECTING, "selecting version")
            resolution = CrateVersionResolver(options.allow_yanked).pick(spec, index.crate(spec.name))
            if not resolution.matched:
                kind = FailureKind.NOT_FOUND if not resolution.found else FailureKind.NO_MATCH
                return fail(kind, resolution.describe_failure())
            record = resolution.record
            assert record is not None
            output = options.output or default_output(record, options.extract)

            cached = None
            if options.use_cache:
                run.stage(EventKind.CHECKING_CACHE, f"checking cache for {record.name} {record.version}")
                cached = lookup_all(cache_dirs, record)

            if cached is not None:
                logger.debug("found cached crate for %s %s at %s", record.name, record.version, cached)
                kind = _output_from_cache(run, record, cached, output, options)
            else:
                kind = _output_from_download(run, record, output, options)
        except ChecksumMismatch as exc:
            return fail(FailureKind.INTEGRITY, str(exc))
        except UnsafeArchiveEntry as exc:
            return fail(FailureKind.UNSAFE_ARCHIVE, str(exc))
        except DownloadError as exc:
            return fail(FailureKind.TRANSPORT, str(exc))
        except CorruptIndexFile as exc:
            return fail(FailureKind.FILESYSTEM, f"{run.operation}: {exc}")
        except (tarfile.TarError, EOFError, zlib.error) as exc:
            return fail(FailureKind.FILESYSTEM, f"{run.operation}: corrupt archive: {exc}")
        except OSError as exc:
            return fail(FailureKind.FILESYSTEM, f"{run.operation}: {exc}")

    verb = "extracted" if kind == OutcomeKind.EXTRACTED else "written"
    run.stage(EventKind.SUCCEEDED, f"{verb} {record.name} {record.version} to {output}")
    if is_debug_enabled(logger):
        logger.debug(
            "Acquisition finished",
            extra=extra_context(
                event="acquire",
                component="pipeline",
                target=subject,
                outcome=kind.value,
                from_cache=cached is not None,
                duration_ms=t.duration_ms(),
            ),
        )
    return AcquisitionOutcome(
        spec=subject,
        kind=kind,
        path=output,
        record=record,
        from_cache=cached is not None,
    )
