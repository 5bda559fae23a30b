"""Enable ``python -m slice_annotator`` execution."""
from slice_annotator.cli import main

if __name__ == "__main__":  # pragma: no cover - convenience entrypoint
    raise SystemExit(main())
