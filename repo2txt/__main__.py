"""Module entrypoint for ``python -m repo2txt``.

All argument parsing and session setup happen in ``repo2txt.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
