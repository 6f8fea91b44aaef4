"""Run script for the SemSync API server."""

from semsync.main import main


if __name__ == "__main__":
    main()
