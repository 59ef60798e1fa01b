"""Allow ``python -m tubesum`` to launch the CLI."""

from tubesum.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
