"""
Pipeline — the ROP chain that turns a package file into an uploaded build.

Domain layer — no I/O of its own. All I/O is injected via ports.

  token_provider.get_token()
    → negotiator.negotiate(token)                      (only when use_session)
      → extractor.extract(package_path)
        → resolver.resolve(bundle_id, session)
          → registrar.create_build(app_id, versions)
            → uploader.upload(build_id, package_path)
              → SubmissionReceipt

Each stage returns Result[T]. The first failure short-circuits every later
stage, so no build is registered for an unresolved app and nothing is
uploaded for an unregistered build.
"""

from __future__ import annotations

from pathlib import Path

from railway.result import Result

from asc_uploader.domain.models import (
    AppIdentity,
    PackageMetadata,
    Session,
    SubmissionReceipt,
)
from asc_uploader.domain.ports import (
    BuildRegistrar,
    DeliveryUploader,
    IdentityResolver,
    MetadataExtractor,
    SessionNegotiator,
    TokenProvider,
)


def _open_session(
    token_provider: TokenProvider,
    negotiator: SessionNegotiator,
    use_session: bool,
) -> Result[Session | bool]:
    """
    Negotiate a legacy session, or succeed with False when sessions are disabled.

    Success cannot wrap None, hence the False placeholder.
    """
    if not use_session:
        return Result.success(False)
    return token_provider.get_token().flat_map(negotiator.negotiate)


def _register_and_upload(
    package_path: Path,
    metadata: PackageMetadata,
    identity: AppIdentity,
    registrar: BuildRegistrar,
    uploader: DeliveryUploader,
) -> Result[SubmissionReceipt]:
    return registrar.create_build(
        identity.apple_id,
        metadata.build_version,
        metadata.short_version_string,
    ).flat_map(
        lambda build: uploader.upload(build.build_id, package_path).map(
            lambda delivery_file: SubmissionReceipt(
                metadata=metadata,
                identity=identity,
                build=build,
                delivery_file=delivery_file,
            )
        )
    )


def run_submission(
    package_path: Path,
    token_provider: TokenProvider,
    extractor: MetadataExtractor,
    negotiator: SessionNegotiator,
    resolver: IdentityResolver,
    registrar: BuildRegistrar,
    uploader: DeliveryUploader,
    use_session: bool = True,
) -> Result[SubmissionReceipt]:
    """
    Execute one complete build submission.

    Returns Result[SubmissionReceipt] on success, or the failure of the first
    stage that failed. Records the backend created before a failure (build,
    delivery file) are left in place.
    """
    return _open_session(token_provider, negotiator, use_session).flat_map(
        lambda session: extractor.extract(package_path).flat_map(
            lambda metadata: resolver.resolve(
                metadata.bundle_identifier,
                session if isinstance(session, Session) else None,
            ).flat_map(
                lambda identity: _register_and_upload(
                    package_path, metadata, identity, registrar, uploader
                )
            )
        )
    )
