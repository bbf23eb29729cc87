"""
XLSX Data Viewer

A small web application for uploading a spreadsheet, checking that it has
the NTE, Municipio, Cod.SEC, Nome Escola and Valor columns, and browsing
its rows filtered by Cod.SEC.

Key modules:
- main.py: FastAPI application with the viewer page and JSON API
- sheet_processor.py: Workbook decoding, column validation and filtering
- viewer_state.py: State of the single viewer page
- utils/result.py: Result pattern implementation for error handling
"""
