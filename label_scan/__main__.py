import uvicorn

from label_scan.config import get_settings

if __name__ == '__main__':
    settings = get_settings()
    uvicorn.run(
        'label_scan.main:app',
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
