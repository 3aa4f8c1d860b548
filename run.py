# /run.py
import os

from app import create_app

app = create_app(os.getenv("PHARMA_SHEET_ENV", "Development"))

if __name__ == "__main__":
    app.run(debug=app.config["DEBUG"])
