"""
Pytest configuration file.

Adds the project directory to the Python path so the flat modules import
during test runs, and provides helpers that build spreadsheets in memory.
"""
import io
import os
import sys

import pandas as pd
import pytest

# Add the current directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))


def _workbook_bytes(df: pd.DataFrame) -> bytes:
    """Serialize a DataFrame to the bytes of a one-sheet .xlsx file."""
    buffer = io.BytesIO()
    df.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def schools_df():
    """
    Fixture providing a sheet with all required columns.

    Returns:
        pandas.DataFrame: Four schools across two municipalities
    """
    return pd.DataFrame({
        'NTE': [1, 1, 2, 2],
        'Municipio': ['Salvador', 'Salvador', 'Feira de Santana', 'Feira de Santana'],
        'Cod.SEC': [1101, 1102, 2201, 'AB-77'],
        'Nome Escola': ['Escola Central', 'Colegio Estadual', 'Escola Modelo', 'Colegio Norte'],
        'Valor': [1500.5, 2300.25, 980.75, 120.5]
    })


@pytest.fixture
def schools_xlsx(schools_df):
    """
    Fixture providing the schools sheet as .xlsx bytes.

    Returns:
        bytes: Workbook content
    """
    return _workbook_bytes(schools_df)


@pytest.fixture
def make_workbook():
    """
    Fixture providing a builder that turns a DataFrame into .xlsx bytes.

    Returns:
        Callable[[pandas.DataFrame], bytes]: The builder
    """
    return _workbook_bytes
