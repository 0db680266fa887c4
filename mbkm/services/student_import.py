"""
Student CSV import - parsing only, no database access.

Layout (first row is a header and is skipped):

    name, nim, birthdate, program_study, status

Birthdate is MM/DD/YYYY or YYYY-MM-DD. The initial password is the
birthdate written as YYYYMMDD and the login name is the NIM.
"""

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple, Union

from mbkm.core.errors import ValidationError

MIN_COLUMNS = 5
BIRTHDATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d")


@dataclass
class StudentRow:
    name: str
    nim: str
    birthdate: date
    program_study: str
    status: str

    @property
    def username(self) -> str:
        return self.nim

    @property
    def initial_password(self) -> str:
        return self.birthdate.strftime("%Y%m%d")

    def email(self, domain: str) -> str:
        return f"{self.nim}@{domain}"


def parse_birthdate(value: str) -> Optional[date]:
    value = value.strip()
    for fmt in BIRTHDATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_student_csv(content: Union[str, bytes]) -> Tuple[List[StudentRow], int]:
    """
    Parse an uploaded CSV into student rows.

    Returns (rows, skipped). Rows with fewer than five columns, an empty
    name or NIM, or an unreadable birthdate are skipped. Raises
    ValidationError when bytes are not UTF-8.
    """
    if isinstance(content, bytes):
        # utf-8-sig drops the BOM spreadsheet exports put in front of the header
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("File must be a UTF-8 encoded CSV", errors={"file": "not valid UTF-8"})

    rows: List[StudentRow] = []
    skipped = 0
    reader = csv.reader(io.StringIO(content))
    next(reader, None)

    for record in reader:
        if not record:
            continue
        if len(record) < MIN_COLUMNS:
            skipped += 1
            continue

        name, nim, birthdate_raw, program_study, status = (v.strip() for v in record[:MIN_COLUMNS])
        birthdate = parse_birthdate(birthdate_raw)
        if not name or not nim or birthdate is None:
            skipped += 1
            continue

        rows.append(StudentRow(
            name=name,
            nim=nim,
            birthdate=birthdate,
            program_study=program_study,
            status=status,
        ))

    return rows, skipped
