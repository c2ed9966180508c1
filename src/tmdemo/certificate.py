"""Self-signed certificate generation via an external PowerShell script.

The script is expected to accept ``-pfxFileName``, ``-pfxPassword`` and
``-domainName`` and to write a password-protected PFX file. Exit code 0 is
success; anything else aborts the run.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

PASSWORD_MASK = "********"


class CertificateGenerationError(Exception):
    """Raised when the certificate script fails or produces no PFX file."""

    pass


def build_command(
    shell: str,
    script: Path,
    domain_name: str,
    pfx_path: Path,
    password: str,
) -> list[str]:
    """Build the script invocation as an argument list (no shell parsing)."""
    return [
        shell,
        "-NoProfile",
        "-File",
        str(script),
        "-pfxFileName",
        str(pfx_path),
        "-pfxPassword",
        password,
        "-domainName",
        domain_name,
    ]


def create_certificate(
    domain_name: str,
    pfx_path: Path,
    password: str,
    *,
    script: Path,
    shell: str,
    work_dir: Path,
    timeout_seconds: int,
) -> Path:
    """Generate a self-signed certificate for a domain.

    Args:
        domain_name: Domain the certificate is issued for.
        pfx_path: Output file; relative paths are resolved against work_dir.
        password: PFX password.
        script: Certificate generation script.
        shell: PowerShell executable used to run the script.
        work_dir: Working directory for the script.
        timeout_seconds: Maximum time the script may run.

    Returns:
        Absolute path of the generated PFX file.

    Raises:
        CertificateGenerationError: If the script cannot run, fails, or
            does not produce the PFX file.
    """
    output = pfx_path if pfx_path.is_absolute() else work_dir / pfx_path
    cmd = build_command(shell, script, domain_name, output, password)

    logger.info(
        "Running certificate script",
        extra={"command": " ".join(PASSWORD_MASK if arg == password else arg for arg in cmd)},
    )

    try:
        result = subprocess.run(
            cmd,
            cwd=work_dir,
            timeout=timeout_seconds,
            capture_output=True,
            text=True,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CertificateGenerationError(
            f"Certificate script timed out after {timeout_seconds}s"
        ) from e
    except FileNotFoundError as e:
        raise CertificateGenerationError(f"Shell not found: {shell}") from e

    if result.returncode != 0:
        # On Windows: Set-ExecutionPolicy -Scope CurrentUser -ExecutionPolicy Bypass
        stderr = (result.stderr or "").strip()
        raise CertificateGenerationError(
            f"Certificate script {script.name} failed with exit code {result.returncode}"
            + (f": {stderr}" if stderr else "")
        )

    if not output.is_file():
        raise CertificateGenerationError(f"Certificate script did not create {output}")

    return output


def read_pfx(pfx_path: Path) -> bytes:
    """Read the PFX blob uploaded with each App Service certificate."""
    try:
        return pfx_path.read_bytes()
    except OSError as e:
        raise CertificateGenerationError(f"Failed to read certificate {pfx_path}: {e}") from e
