"""Run the nag bot against the event of the current GitHub Actions job."""

from __future__ import annotations

from app.action import main


if __name__ == "__main__":
    main()
