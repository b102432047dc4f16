"""
Script-target Solidity compiler (soljson.js).

The soljson module is evaluated inside an embedded V8 context. Its own
Emscripten exports (cwrap + the compile entry points) are used to obtain a
compile() function; builds that predate standard JSON get their input and
output translated.

Compilers older than 0.4.0 keep mutable global state between calls, so each of
their compilations runs in a fresh spawned process with its own V8 heap. The
process gets script path, version and input as startup arguments, returns one
result over a one-way pipe, and is discarded.
"""
from __future__ import annotations

import json
import logging
import multiprocessing
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from py_mini_racer import MiniRacer

from ..core.errors import CompilerProcessError
from .invoker import ensure_json

logger = logging.getLogger(__name__)

# Emscripten picks its "shell" environment when these exist and no browser/node globals do.
_SHELL_STUBS = """
var print = function () {};
var printErr = function () {};
var read = function (f) { throw new Error('read is not available: ' + f); };
var readbuffer = read;
var quit = function (status) { throw new Error('compiler exited with status ' + status); };
var scriptArgs = [];
"""

_ENTRY_POINT_JS = """
var __cv = (function (root) {
  var M = root.Module;
  if (!M || typeof M.cwrap !== 'function') { return { entry: null, call: null }; }
  function has(name) { return typeof M['_' + name] === 'function'; }
  if (has('solidity_compile')) {
    var solidityCompile = M.cwrap('solidity_compile', 'string', ['string', 'number', 'number']);
    return { entry: 'standard', call: function (input) { return solidityCompile(input, 0, 0); } };
  }
  if (has('compileStandard')) {
    var compileStandard = M.cwrap('compileStandard', 'string', ['string', 'number']);
    return { entry: 'standard', call: function (input) { return compileStandard(input, 0); } };
  }
  if (has('compileJSONMulti')) {
    var compileMulti = M.cwrap('compileJSONMulti', 'string', ['string', 'number']);
    return { entry: 'legacy-multi', call: function (input, optimize) { return compileMulti(input, optimize); } };
  }
  if (has('compileJSON')) {
    var compileSingle = M.cwrap('compileJSON', 'string', ['string', 'number']);
    return { entry: 'legacy-single', call: function (input, optimize) { return compileSingle(input, optimize); } };
  }
  return { entry: null, call: null };
})(this);
function __cvEntryPoint() { return __cv.entry; }
function __cvCompile(input, optimize) { return __cv.call(input, optimize); }
"""

_WARNING_RE = re.compile(r"(^|:)\s*Warning:", re.MULTILINE)


def translate_standard_input(input_stringified: str, entry: str) -> Tuple[str, int]:
    """Standard-JSON request -> (legacy compiler input, optimize flag)."""
    request = json.loads(input_stringified)
    sources: Dict[str, str] = {}
    for path, source in (request.get("sources") or {}).items():
        content = source.get("content") if isinstance(source, dict) else None
        if content is None:
            raise CompilerProcessError(f"Source {path} has no inline content")
        sources[path] = content
    optimizer = (request.get("settings") or {}).get("optimizer") or {}
    optimize = 1 if optimizer.get("enabled") else 0

    if entry == "legacy-single":
        if len(sources) != 1:
            raise CompilerProcessError("This compiler version accepts a single source file only")
        return next(iter(sources.values())), optimize
    return json.dumps({"sources": sources}), optimize


def _legacy_diagnostic(message: str) -> Dict[str, Any]:
    is_warning = bool(_WARNING_RE.search(message))
    return {
        "component": "general",
        "type": "Warning" if is_warning else "Error",
        "severity": "warning" if is_warning else "error",
        "message": message,
        "formattedMessage": message,
    }


def translate_legacy_output(output_stringified: str, source_paths: List[str]) -> str:
    """Legacy compiler output -> standard-JSON output."""
    legacy = json.loads(output_stringified)
    errors = [_legacy_diagnostic(str(m)) for m in legacy.get("errors") or []]

    default_path = source_paths[0] if len(source_paths) == 1 else ""
    contracts: Dict[str, Dict[str, Any]] = {}
    for key, contract in (legacy.get("contracts") or {}).items():
        if ":" in key:
            path, name = key.rsplit(":", 1)
        else:
            path, name = default_path, key
        interface = contract.get("interface")
        try:
            abi = json.loads(interface) if isinstance(interface, str) else (interface or [])
        except ValueError:
            abi = []
        contracts.setdefault(path, {})[name] = {
            "abi": abi,
            "metadata": contract.get("metadata", ""),
            "evm": {
                "bytecode": {"object": contract.get("bytecode", ""), "opcodes": contract.get("opcodes", "")},
                "deployedBytecode": {"object": contract.get("runtimeBytecode", "")},
            },
        }

    sources = {
        path: {"id": index, "legacyAST": (legacy.get("sources") or {}).get(path, {}).get("AST")}
        for index, path in enumerate(source_paths)
    }
    out: Dict[str, Any] = {"contracts": contracts, "sources": sources}
    if errors:
        out["errors"] = errors
    return json.dumps(out)


class SolcJs:
    """A soljson module loaded into its own V8 context."""

    def __init__(self, script_path: Path, version: str) -> None:
        self.script_path = Path(script_path)
        self.version = version
        self._lock = threading.Lock()
        self._ctx = MiniRacer()
        self._ctx.eval(_SHELL_STUBS)
        self._ctx.eval(self.script_path.read_text(encoding="utf-8"))
        self._ctx.eval(_ENTRY_POINT_JS)
        self.entry_point: Optional[str] = self._ctx.call("__cvEntryPoint")
        if self.entry_point is None:
            raise CompilerProcessError(f"{self.script_path.name} exposes no known compile entry point")
        logger.debug("Loaded solc-js %s entry=%s", version, self.entry_point)

    def compile(self, input_stringified: str) -> str:
        ensure_json(input_stringified)
        with self._lock:
            if self.entry_point == "standard":
                return self._ctx.call("__cvCompile", input_stringified, 0)
            legacy_input, optimize = translate_standard_input(input_stringified, self.entry_point)
            output = self._ctx.call("__cvCompile", legacy_input, optimize)
        source_paths = list((json.loads(input_stringified).get("sources") or {}).keys())
        return translate_legacy_output(output, source_paths)


_LOADED: Dict[str, SolcJs] = {}
_LOADED_LOCK = threading.Lock()


def load_solc_js(script_path: Path, version: str) -> SolcJs:
    """Return the cached in-process compiler for a script file, loading it on first use."""
    key = str(Path(script_path).resolve())
    with _LOADED_LOCK:
        solc = _LOADED.get(key)
        if solc is None:
            solc = SolcJs(Path(script_path), version)
            _LOADED[key] = solc
        return solc


def _isolated_compile_main(conn: Any, script_path: str, version: str, input_stringified: str) -> None:
    """Entry point of the per-call isolate process."""
    try:
        solc = SolcJs(Path(script_path), version)
        conn.send(("ok", solc.compile(input_stringified)))
    except Exception as exc:
        conn.send(("error", f"{type(exc).__name__}: {exc}"))
    finally:
        conn.close()


def compile_isolated(script_path: Path, version: str, input_stringified: str) -> str:
    """Compile once in a brand-new process; the process never serves a second task."""
    ensure_json(input_stringified)
    mp = multiprocessing.get_context("spawn")
    receiver, sender = mp.Pipe(duplex=False)
    proc = mp.Process(
        target=_isolated_compile_main,
        args=(sender, str(script_path), version, input_stringified),
        daemon=True,
    )
    proc.start()
    sender.close()
    try:
        status, payload = receiver.recv()
    except EOFError as exc:
        proc.join()
        raise CompilerProcessError(
            f"Isolated compiler {version} exited without a result (exit code {proc.exitcode})"
        ) from exc
    finally:
        receiver.close()
    proc.join()
    if status != "ok":
        raise CompilerProcessError(f"Isolated compiler {version} failed: {payload}")
    return payload
