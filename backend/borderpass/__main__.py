import uvicorn

from borderpass.core.config import RELAY_HOST, RELAY_PORT


def main() -> None:
    uvicorn.run("borderpass.main:app", host=RELAY_HOST, port=RELAY_PORT)


if __name__ == "__main__":
    main()
