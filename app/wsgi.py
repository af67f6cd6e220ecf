import logging

from app.docappoint import create_app

app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = app.config["PORT"]
    app.logger.info("Serving on port %s", port)
    app.run(host="0.0.0.0", port=port)
