"""Точка входа в приложение."""
import logging
import sys

from enhancer import config
from enhancer.app import ImageEnhancerApp


def main() -> None:
    """Настраивает логирование и запускает главное окно.

    Необязательный первый аргумент командной строки — URL или путь к изображению.
    """
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    initial = sys.argv[1] if len(sys.argv) > 1 else None
    app = ImageEnhancerApp(initial_source=initial)
    app.mainloop()


if __name__ == "__main__":
    main()
