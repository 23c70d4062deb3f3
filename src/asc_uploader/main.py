"""
Application entry point — command-line parsing and dependency wiring.

Composition root: creates concrete adapters and injects them into the pipeline.
This is the ONLY place where concrete classes are instantiated.
Everything else depends on Protocol interfaces.

Commands:
  asc-uploader upload PACKAGE
      Submit PACKAGE (an .ipa) using settings from the environment.
  asc-uploader create-api-key --issuer-id ID --key-id ID PRIVATE_KEY API_KEY
      Package a PEM private key into a unified JSON key file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TypeAlias

import structlog
from railway import LoggingExecutionContext
from railway.result import Result

from asc_uploader import __version__
from asc_uploader.adapters.build_registrar import RestBuildRegistrar
from asc_uploader.adapters.credential_store import CredentialStore
from asc_uploader.adapters.delivery_upload import ChunkedDeliveryUploader
from asc_uploader.adapters.http_transport import HttpxTransport
from asc_uploader.adapters.ipa_metadata import ZipPackageMetadataExtractor
from asc_uploader.adapters.legacy_rpc import (
    ClientIdentity,
    JsonRpcEndpoint,
    JsonRpcIdentityResolver,
    JsonRpcSessionNegotiator,
    MatchPolicy,
)
from asc_uploader.adapters.token_issuer import JwtTokenIssuer
from asc_uploader.config import ApiKeySettings, AppSettings
from asc_uploader.domain.models import SubmissionReceipt
from asc_uploader.pipeline import run_submission


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console logging on stderr.

    stdout is left for command output.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


_Adapters: TypeAlias = tuple[
    JwtTokenIssuer,
    ZipPackageMetadataExtractor,
    JsonRpcSessionNegotiator,
    JsonRpcIdentityResolver,
    RestBuildRegistrar,
    ChunkedDeliveryUploader,
]


def _load_credentials(settings: ApiKeySettings) -> Result[CredentialStore]:
    if settings.path is not None:
        return CredentialStore.from_json_path(settings.path)
    return CredentialStore.from_pem_path(
        settings.issuer_id,  # type: ignore[arg-type]
        settings.key_id,  # type: ignore[arg-type]
        settings.private_key_path,  # type: ignore[arg-type]
    )


def _create_adapters(settings: AppSettings) -> Result[_Adapters]:
    """
    Instantiate all concrete adapters from application settings.

    Fails with CONFIGURATION_ERROR when the API key cannot be loaded.
    """

    def _wire(credentials: CredentialStore) -> _Adapters:
        transport = HttpxTransport(
            timeout=settings.http_timeout_seconds,
            user_agent=f"asc-uploader/{__version__}",
        )
        token_issuer = JwtTokenIssuer(
            credentials,
            validity_seconds=settings.token.validity_seconds,
            audience=settings.token.audience,
        )
        endpoint = JsonRpcEndpoint(
            transport,
            settings.backend.json_rpc_url,
            ClientIdentity(
                application=settings.client.application,
                application_bundle_id=settings.client.application_bundle_id,
                version=settings.client.version,
                os_identifier=settings.client.os_identifier,
                framework_versions=settings.client.framework_versions,
            ),
        )
        negotiator = JsonRpcSessionNegotiator(endpoint)
        return (
            token_issuer,
            ZipPackageMetadataExtractor(),
            negotiator,
            JsonRpcIdentityResolver(
                endpoint, token_issuer, negotiator, MatchPolicy(settings.identity.match_policy)
            ),
            RestBuildRegistrar(transport, token_issuer, settings.backend.iris_url),
            ChunkedDeliveryUploader(
                transport,
                token_issuer,
                settings.backend.iris_url,
                max_concurrency=settings.upload.max_concurrency,
            ),
        )

    return _load_credentials(settings.api_key).map(_wire)


def submit(settings: AppSettings, package_path: Path) -> Result[SubmissionReceipt]:
    """Wire adapters and run one submission inside a logging execution context."""
    ctx = LoggingExecutionContext(operation="BuildSubmission")

    def _run(adapters: _Adapters) -> Result[SubmissionReceipt]:
        token_issuer, extractor, negotiator, resolver, registrar, uploader = adapters
        return ctx.execute(
            lambda: run_submission(
                package_path,
                token_provider=token_issuer,
                extractor=extractor,
                negotiator=negotiator,
                resolver=resolver,
                registrar=registrar,
                uploader=uploader,
                use_session=settings.use_session,
            )
        )

    return _create_adapters(settings).flat_map(_run)


# ─────────────────────── Commands ───────────────────────


def _report(result: Result, on_success: str) -> int:
    if result.is_success():
        print(on_success.format(value=result.value()))  # noqa: T201
        return 0
    error = result.error()
    print(f"ERROR {error.code.value}: {error.message}", file=sys.stderr)  # noqa: T201
    return 1


def _cmd_upload(args: argparse.Namespace) -> int:
    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        return 1

    configure_structlog(settings.log_level)
    structlog.get_logger().info("app.starting", version=__version__, package=str(args.package))
    return _report(
        submit(settings, args.package),
        "build {value.build.build_id} uploaded "
        "(delivery file {value.delivery_file.delivery_file_id})",
    )


def _cmd_create_api_key(args: argparse.Namespace) -> int:
    configure_structlog()
    result = CredentialStore.from_pem_path(args.issuer_id, args.key_id, args.private_key).flat_map(
        lambda store: store.write_json(args.api_key)
    )
    return _report(result, "wrote {value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asc-uploader",
        description="Submit builds to the App Store content-delivery backend.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Submit an .ipa as a new build")
    upload.add_argument("package", type=Path, help="Path to the .ipa package")
    upload.set_defaults(handler=_cmd_upload)

    create_key = commands.add_parser("create-api-key", help="Create a unified API key file")
    create_key.add_argument("--issuer-id", required=True)
    create_key.add_argument("--key-id", required=True)
    create_key.add_argument("private_key", type=Path, help="PEM private key (.p8)")
    create_key.add_argument("api_key", type=Path, help="Where to write the unified JSON key")
    create_key.set_defaults(handler=_cmd_create_api_key)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse the command line and run the selected command."""
    args = build_parser().parse_args(argv)
    sys.exit(args.handler(args))


if __name__ == "__main__":
    main()
