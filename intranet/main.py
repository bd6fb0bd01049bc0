"""FastAPI 서버 실행

Usage:
    intranet
    # or
    uvicorn intranet.api:app --reload --host 0.0.0.0 --port 8080
"""
import argparse
import os

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the intranet API server")
    parser.add_argument("--server.port", dest="server_port", type=int, default=int(os.getenv("PORT", 8080)), help="Port to run the server on")
    parser.add_argument("--server.address", dest="server_address", type=str, default=os.getenv("HOST", "0.0.0.0"), help="Host to run the server on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args, unknown = parser.parse_known_args()

    uvicorn.run(
        "intranet.api:app",
        host=args.server_address,
        port=args.server_port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
