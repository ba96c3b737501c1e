"""Allow running cmdprobe as ``python -m cmdprobe``."""

from cmdprobe.cli.main import main

if __name__ == "__main__":
    main()
