"""Lightweight health check utilities for clauseguard.

No recognition or generation calls are made here; the goal is a fast readiness
signal for CI / deployment scripts.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, List


@dataclass
class HealthStatus:
    component: str
    ok: bool
    detail: str

    def as_dict(self) -> Dict[str, Any]:
        return {"component": self.component, "ok": self.ok, "detail": self.detail}


def _check_import(module: str) -> HealthStatus:
    try:
        __import__(module)
        return HealthStatus(module, True, "import ok")
    except Exception as e:  # pragma: no cover - diagnostic path
        return HealthStatus(module, False, f"import failed: {e}")


CORE_IMPORTS = [
    "google.generativeai",
    "dotenv",
    "pytesseract",
    "PIL",
    "langdetect",
]


def _check_tesseract() -> HealthStatus:
    try:
        import pytesseract
        version = pytesseract.get_tesseract_version()
        langs = pytesseract.get_languages(config="")
        return HealthStatus("tesseract", True, f"tesseract {version}, {len(langs)} language(s)")
    except Exception as e:  # pragma: no cover - depends on host binary
        return HealthStatus("tesseract", False, f"tesseract unavailable: {e}")


def _check_classifier() -> HealthStatus:
    from clauseguard.analysis.classifier import LocalClassifier
    try:
        matches = LocalClassifier().classify(["The security deposit shall be forfeited if the tenant leaves."])
        return HealthStatus("classifier", bool(matches), f"{len(matches)} rule match(es) on probe text")
    except Exception as e:  # pragma: no cover - rare path
        return HealthStatus("classifier", False, f"classifier probe failed: {e}")


def run_health_check(light: bool = True) -> Dict[str, Any]:
    """Run a series of lightweight checks.

    light=True skips the tesseract binary probe.
    """
    results: List[HealthStatus] = []
    for mod in CORE_IMPORTS:
        results.append(_check_import(mod))
    results.append(_check_classifier())
    if not light:
        results.append(_check_tesseract())

    aggregate = all(r.ok for r in results)
    return {
        "ok": aggregate,
        "components": [r.as_dict() for r in results],
    }


if __name__ == "__main__":  # Manual invocation helper
    import json, sys
    report = run_health_check(light=False)
    print(json.dumps(report, indent=2))
    sys.exit(0 if report["ok"] else 1)
