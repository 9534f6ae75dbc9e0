import os

import uvicorn


def main():
    uvicorn.run(
        "trackart.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8080)),
    )


if __name__ == "__main__":
    main()
