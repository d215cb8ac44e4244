from pathlib import Path
import logging
import sys

from dotenv import load_dotenv

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from lorequest.bootstrap import EngineSettings
from lorequest.presentation.combat_simulator import main as simulator_main


def main() -> int:
    load_dotenv()
    settings = EngineSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return simulator_main()
    except KeyboardInterrupt:
        print("\nSession ended.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
