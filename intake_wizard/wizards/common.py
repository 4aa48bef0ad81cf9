"""
Shared field constants for the concrete wizards
"""

from wtforms import ValidationError

NAME_PATTERN = r"^[a-zA-Z\s'-]+$"
PHONE_PATTERN = r'^[\d\s\-\+\(\)]+$'

YES_NO = ('Yes', 'No')

DOCUMENT_TYPES = ('.pdf', '.jpg', '.jpeg', '.png')
SPREADSHEET_TYPES = ('.csv', '.xlsx', '.xls')

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def max_upload_size(value):
    """Reject attachments above the upload limit"""
    attachments = value if isinstance(value, (list, tuple)) else [value]
    for attachment in attachments:
        if attachment.size > MAX_UPLOAD_BYTES:
            raise ValidationError(f"{attachment.filename} exceeds the 10 MB upload limit")
