"""Start the API server"""
import uvicorn
import sys
import os

# Run from the backend directory so app.* imports resolve
if __name__ == "__main__":
    base_dir = os.path.dirname(os.path.abspath(__file__))
    os.chdir(base_dir)

    if base_dir not in sys.path:
        sys.path.insert(0, base_dir)

    from app.config import config

    print(f"Starting server in: {base_dir}")
    print(f"Server will start at: http://{config.API_HOST}:{config.API_PORT}")
    print("Press Ctrl+C to stop the server")
    print("-" * 50)

    uvicorn.run(
        "app.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=True,
        log_level="info"
    )
