"""
filename: tools.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definitions of reusable utility functions.
"""

from datetime import datetime

from pytz import timezone
from sqlalchemy.orm import Session

from ledger.config import settings


def validate_entries_in_db(db: Session, entries: list) -> dict:
    """
    Auxiliary function to validate the existence of data in the database. This is useful for
    validating the data before making operations. After successful validation, it can also
    return the data in the form of SQLAlchemy models.

    Each entry names the model, the id to look for and the error class to raise when the id
    is missing. With the optional flag <active_only> an inactive entry counts as missing.

    :param db: (Session) SQLAlchemy ORM session.
    :param entries: (List[Union[Entry, None]]) collection of data to check; optional flag
     <return_model> can be included if the entry data is requested to be returned.
    :return: (dict) A dictionary with model names as keys and corresponding result as values.
    """
    results = {}
    for entry in entries:
        if entry is None:
            continue  # Skip processing if entry is None
        model = entry["model"]
        query = db.query(model).filter(model.id == entry["id_value"])
        if entry.get("active_only"):
            query = query.filter(model.active.is_(True))
        if entry.get("return_model"):
            model_result = query.first()
            if not model_result:
                raise entry["error"]()
            results[model.__name__] = model_result
        else:
            count_result = query.count()
            if not count_result:
                raise entry["error"]()
    return results


def now_factory() -> datetime:
    """
    Function that computes the current date-time in the timezone set in the config.py, without
    microseconds and stored as a naive value.

    :returns: (datetime) Current date-time
    """
    tz = timezone(settings.timezone)
    return datetime.now(tz).replace(microsecond=0, tzinfo=None)

