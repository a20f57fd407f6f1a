import uvicorn

from lk_documents.config import settings


def main():
    uvicorn.run("lk_documents.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
