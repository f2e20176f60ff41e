#!/usr/bin/env python3
"""
Ledger Loader Module

Reads payment, tenant and expense exports for the command-line tool. JSON
exports come straight from the application API; CSV and Excel exports are
read with pandas, with empty cells turned into missing values.
"""

import os
import logging
from typing import Any, Dict, List

import pandas as pd

from billing.models import Expense, Payment, Tenant, normalize_expenses, normalize_payments, normalize_tenants
from billing.utils.helpers import load_json

# Configure logging
logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = ('.xlsx', '.xlsm')


def _frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a DataFrame to row dictionaries with NaN cells as None."""
    df = df.dropna(how='all')
    return df.astype(object).where(pd.notna(df), None).to_dict(orient='records')


def load_records(file_path: str) -> List[Dict[str, Any]]:
    """
    Load raw records from a JSON, CSV or Excel (.xlsx) file.

    A JSON file may hold a list of records or an object with the list under
    'data', as returned by the API.

    Args:
        file_path: Path to the export

    Returns:
        List of record dictionaries

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file type is not supported
    """
    extension = os.path.splitext(file_path)[1].lower()

    if extension == '.json':
        data = load_json(file_path)
        if isinstance(data, dict):
            data = data.get('data', [data])
        records = list(data)
    elif extension == '.csv':
        try:
            records = _frame_to_records(pd.read_csv(file_path))
        except FileNotFoundError:
            logger.error(f"File not found: {file_path}")
            raise
    elif extension in EXCEL_EXTENSIONS:
        try:
            records = _frame_to_records(pd.read_excel(file_path, engine='openpyxl'))
        except FileNotFoundError:
            logger.error(f"File not found: {file_path}")
            raise
    else:
        raise ValueError(f"Unsupported ledger file type: {file_path}")

    logger.info(f"Loaded {len(records)} records from {file_path}")
    return records


def load_payments(file_path: str) -> List[Payment]:
    """Load and normalize a payment export."""
    return normalize_payments(load_records(file_path))


def load_tenants(file_path: str) -> List[Tenant]:
    """Load and normalize a tenant export."""
    return normalize_tenants(load_records(file_path))


def load_expenses(file_path: str) -> List[Expense]:
    """Load and normalize an expense export."""
    return normalize_expenses(load_records(file_path))
