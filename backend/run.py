"""
Run the PrintOps API with uvicorn.

Usage:
    python run.py
    python run.py --reload    # auto-reload while developing
    python run.py --port 8080
"""
import argparse
import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the PrintOps API server")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    args = parser.parse_args()

    # One worker only: the reminder sweep runs inside the app process
    uvicorn.run(
        "printops.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1
    )


if __name__ == "__main__":
    main()
