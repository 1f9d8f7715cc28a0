"""
filename: main.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Entry point that serves the ledger API.
"""

import uvicorn

from ledger.main import app

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8080)
