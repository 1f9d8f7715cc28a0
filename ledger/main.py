"""
filename: main.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Project's root module.
"""

import logging

from fastapi import FastAPI

from ledger import models
from ledger.config import settings
from ledger.database import engine
from ledger.routers.balance import router as balance_router
from ledger.routers.transaction import router as transaction_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Ledger",
    version="0.1.0",
    summary="Personal finance ledger with balance-consistent transactions",
)
app.include_router(transaction_router)
app.include_router(balance_router)

models.Base.metadata.create_all(bind=engine)
