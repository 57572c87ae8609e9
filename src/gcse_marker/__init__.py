"""Top-level package for the GCSE answer marking pipeline.

Provides subpackages:
- gcse_marker.ocr – multi-pass recognition, block clustering, math regions
- gcse_marker.matching – question similarity and corpus matching
- gcse_marker.schemes – scheme orchestration, consensus and generic rubrics
- gcse_marker.results – marking model output repair, sanitisation, scoring
- gcse_marker.grading – grade boundary resolution
- gcse_marker.pipeline – end-to-end MarkingPipeline
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    try:
        from importlib.metadata import version as pkg_version, PackageNotFoundError
        return pkg_version("gcse_marker")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()
__copyright__ = "Copyright 2026 Timothy Carpenter Licensed under the Polyform Noncommercial License 1.0.0"
__all__: list[str] = ["__version__"]
