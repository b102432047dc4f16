"""
Standard-JSON compiler invocation.

The compiler is always spawned from an argv list (never through a shell), the
request is written to its stdin, and stdout is read up to a hard byte cap.
Output parsing is shared by the native and script paths.
"""
from __future__ import annotations

import errno
import json
import logging
import subprocess
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.errors import CompilerError, CompilerProcessError, NoOutput, OutputTooLarge

logger = logging.getLogger(__name__)

MAX_OUTPUT_BYTES = 250 * 1024 * 1024
_READ_CHUNK = 1024 * 1024


def ensure_json(input_stringified: str) -> None:
    """The request is untrusted: refuse anything that is not a JSON document."""
    try:
        json.loads(input_stringified)
    except (TypeError, ValueError) as exc:
        raise CompilerProcessError(f"Compiler input is not valid JSON: {exc}") from exc


def run_standard_json(
    executable: Union[str, Path],
    input_stringified: str,
    *,
    max_output_bytes: int = MAX_OUTPUT_BYTES,
    extra_args: Optional[List[str]] = None,
) -> str:
    """
    Run `<executable> --standard-json`, feed the request on stdin and return stdout.

    Non-zero exit or anything on stderr raises CompilerProcessError; stdout
    beyond max_output_bytes kills the process and raises OutputTooLarge.
    """
    ensure_json(input_stringified)
    argv = [str(executable), "--standard-json", *(extra_args or [])]
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        if exc.errno == errno.ENOBUFS:
            raise OutputTooLarge("Compilation output size too large") from exc
        raise CompilerProcessError(f"Could not start compiler {executable}: {exc}") from exc

    stderr_chunks: List[bytes] = []

    def _feed_stdin() -> None:
        try:
            proc.stdin.write(input_stringified.encode("utf-8"))
        except (BrokenPipeError, OSError):
            pass
        finally:
            try:
                proc.stdin.close()
            except OSError:
                pass

    def _drain_stderr() -> None:
        stderr_chunks.append(proc.stderr.read())

    writer = threading.Thread(target=_feed_stdin, daemon=True)
    reader = threading.Thread(target=_drain_stderr, daemon=True)
    writer.start()
    reader.start()

    stdout = bytearray()
    try:
        while True:
            chunk = proc.stdout.read(_READ_CHUNK)
            if not chunk:
                break
            stdout.extend(chunk)
            if len(stdout) > max_output_bytes:
                proc.kill()
                raise OutputTooLarge(
                    f"Compilation output size too large (> {max_output_bytes // (1024 * 1024)} MiB)"
                )
    except OSError as exc:
        proc.kill()
        if exc.errno == errno.ENOBUFS:
            raise OutputTooLarge("Compilation output size too large") from exc
        raise CompilerProcessError(f"Reading compiler output failed: {exc}") from exc
    finally:
        returncode = proc.wait()
        writer.join()
        reader.join()
        proc.stdout.close()
        proc.stderr.close()

    stderr = b"".join(stderr_chunks).decode("utf-8", errors="replace")
    if returncode != 0:
        raise CompilerProcessError(
            f"Compiler process exited with code {returncode}:\n {stderr}",
            stderr=stderr,
            returncode=returncode,
        )
    if stderr:
        raise CompilerProcessError(
            f"Compiler process returned with errors:\n {stderr}",
            stderr=stderr,
            returncode=returncode,
        )
    return stdout.decode("utf-8")


def parse_compiler_output(compiled: Optional[str]) -> Dict[str, Any]:
    """
    Parse and validate standard-JSON output.

    Raises NoOutput for empty output and CompilerError (with every
    error-severity diagnostic) when the compiler reported errors.
    """
    if not compiled:
        raise NoOutput("Compilation failed. No output from the compiler.")
    try:
        output = json.loads(compiled)
    except ValueError as exc:
        raise CompilerProcessError(f"Compiler output is not valid JSON: {exc}") from exc
    if not isinstance(output, dict) or ("contracts" not in output and "errors" not in output):
        raise CompilerProcessError("Compiler output has neither 'contracts' nor 'errors'")

    diagnostics = output.get("errors") or []
    error_messages = [e for e in diagnostics if isinstance(e, dict) and e.get("severity") == "error"]
    if error_messages:
        logger.error("Compiler error: %s", json.dumps(error_messages))
        raise CompilerError("Compiler error", error_messages, diagnostics)
    return output
