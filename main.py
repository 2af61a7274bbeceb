"""
CycleSense Scorer - Main Entry Point
Runs the FastAPI backend
"""

import subprocess
import sys
import os
import signal

from cyclesense.config import API_PORT, LOG_LEVEL


def main():
    os.chdir(os.path.dirname(os.path.abspath(__file__)))

    api_proc = subprocess.Popen([
        sys.executable, "-m", "uvicorn", "api.main:app",
        "--host=0.0.0.0", f"--port={API_PORT}",
        f"--log-level={LOG_LEVEL}",
    ])

    def shutdown(signum, frame):
        api_proc.terminate()
        sys.exit(0)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    try:
        api_proc.wait()
    except KeyboardInterrupt:
        pass
    finally:
        api_proc.terminate()


if __name__ == "__main__":
    main()
