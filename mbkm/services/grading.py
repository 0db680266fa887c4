"""
Weighted Grade Calculator

Combines the three grader scores of an evaluation (company, supervising
lecturer, examiner) into one total using the program's weight set
(bobot_nilai). Weights are normalised by their sum, so they may add up to
any positive total.

A final letter is only produced once all three scores have been submitted;
until then the letter is NO_GRADE.
"""

from dataclasses import asdict, dataclass
from typing import Optional

NO_GRADE = "-"

# (lower bound, letter), checked top-down
GRADE_SCALE = (
    (85, "A"),
    (70, "B"),
    (55, "C"),
    (40, "D"),
)
LOWEST_GRADE = "E"


@dataclass(frozen=True)
class GradeWeights:
    company: float
    lecturer: float
    examiner: float

    @property
    def total(self) -> float:
        return self.company + self.lecturer + self.examiner

    @classmethod
    def from_row(cls, row: dict) -> "GradeWeights":
        """Build weights from a bobot_nilai row."""
        return cls(
            company=float(row.get("bobot_nilai_perusahaan") or 0),
            lecturer=float(row.get("bobot_nilai_pembimbing") or 0),
            examiner=float(row.get("bobot_nilai_penguji") or 0),
        )


@dataclass(frozen=True)
class GradeBreakdown:
    company_score: float
    lecturer_score: float
    examiner_score: float
    total_score: float
    grade: str

    def to_dict(self) -> dict:
        return asdict(self)


def grade_letter(score: float) -> str:
    """Map a numeric score onto the letter scale."""
    for lower_bound, letter in GRADE_SCALE:
        if score >= lower_bound:
            return letter
    return LOWEST_GRADE


def calculate_final_grade(
    company_score: Optional[float],
    lecturer_score: Optional[float],
    examiner_score: Optional[float],
    weights: GradeWeights,
) -> Optional[GradeBreakdown]:
    """
    Calculate weighted contributions, total and letter.

    Returns None when the weights sum to zero. Absent scores contribute
    nothing to the total and keep the letter at NO_GRADE.
    """
    weight_total = weights.total
    if weight_total <= 0:
        return None

    def contribution(score: Optional[float], weight: float) -> float:
        if score is None:
            return 0.0
        return float(score) * weight / weight_total

    company = contribution(company_score, weights.company)
    lecturer = contribution(lecturer_score, weights.lecturer)
    examiner = contribution(examiner_score, weights.examiner)
    total = company + lecturer + examiner

    complete = all(s is not None for s in (company_score, lecturer_score, examiner_score))
    letter = grade_letter(total) if complete else NO_GRADE

    return GradeBreakdown(
        company_score=company,
        lecturer_score=lecturer,
        examiner_score=examiner,
        total_score=total,
        grade=letter,
    )
