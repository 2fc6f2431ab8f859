"""
Error codes and user-facing messages for the HTTP layer.

The analysis functions never raise for malformed cells; everything here
concerns uploads, stored datasets and request handling.
"""
from typing import Dict, Optional


class ErrorCodes:
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    FILE_EMPTY = "FILE_EMPTY"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    PARSE_ERROR = "PARSE_ERROR"
    NO_SHEETS = "NO_SHEETS"
    DATASET_NOT_FOUND = "DATASET_NOT_FOUND"
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    ErrorCodes.FILE_TOO_LARGE: {
        "message": "This workbook is too large",
        "detail": "The uploaded file exceeds the size limit for a single analysis.",
        "suggestion": "Remove sheets or columns you don't need, or upload a sample of the rows."
    },
    ErrorCodes.FILE_EMPTY: {
        "message": "The file is empty",
        "detail": "No bytes were received for the uploaded file.",
        "suggestion": "Check that the workbook was saved before uploading it."
    },
    ErrorCodes.INVALID_FILE_TYPE: {
        "message": "Unsupported file type",
        "detail": "Only Excel workbooks (.xlsx) and CSV files (.csv) can be analyzed.",
        "suggestion": "Use 'Save As' in your spreadsheet tool and pick .xlsx, .xls or .csv."
    },
    ErrorCodes.PARSE_ERROR: {
        "message": "The workbook could not be read",
        "detail": "The file looks damaged or is not in the format its extension suggests.",
        "suggestion": "Open it in your spreadsheet tool, save a fresh copy and upload that."
    },
    ErrorCodes.NO_SHEETS: {
        "message": "The workbook contains no sheets",
        "detail": "No sheet with a header row was found.",
        "suggestion": "Make sure the first row of each sheet holds column names."
    },
    ErrorCodes.DATASET_NOT_FOUND: {
        "message": "Dataset not found",
        "detail": "The dataset has expired or was never uploaded.",
        "suggestion": "Upload the workbook again."
    },
    ErrorCodes.SHEET_NOT_FOUND: {
        "message": "Sheet not found",
        "detail": "The requested sheet does not exist in this workbook.",
        "suggestion": "Pick one of the sheet names listed in the upload response."
    },
    ErrorCodes.RATE_LIMIT_EXCEEDED: {
        "message": "Too many uploads",
        "detail": "Uploads are rate limited per client.",
        "suggestion": "Wait a minute and try again."
    },
    ErrorCodes.TIMEOUT: {
        "message": "The analysis took too long",
        "detail": "Very large sheets can exceed the processing time limit.",
        "suggestion": "Upload fewer rows or split the workbook into smaller files."
    },
    ErrorCodes.UNKNOWN_ERROR: {
        "message": "Something unexpected happened",
        "detail": "The request failed for a reason we did not anticipate.",
        "suggestion": "Try again in a moment. If it keeps failing, try a different file."
    }
}


def get_error_response(error_code: str, additional_detail: Optional[str] = None) -> Dict[str, str]:
    """
    Build the error payload for an error code.

    Args:
        error_code: One of the ErrorCodes constants
        additional_detail: Optional text appended to the detail

    Returns:
        Dictionary with code, message, detail and suggestion
    """
    error_info = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCodes.UNKNOWN_ERROR])

    response = {
        "code": error_code,
        "message": error_info["message"],
        "detail": error_info["detail"],
        "suggestion": error_info["suggestion"]
    }

    if additional_detail:
        response["detail"] = f"{response['detail']} {additional_detail}"

    return response
