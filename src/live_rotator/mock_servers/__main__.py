"""Serve the mock member API: python -m live_rotator.mock_servers"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "live_rotator.mock_servers.app:create_app",
        factory=True,
        host=os.getenv("MOCK_HOST", "127.0.0.1"),
        port=int(os.getenv("MOCK_PORT", 8000)),
        log_level="warning"
    )


if __name__ == "__main__":
    main()
