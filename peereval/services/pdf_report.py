import textwrap
from typing import List

import fitz

from peereval.models.survey import SurveyCriterion
from peereval.utils.helpers import as_utc, get_utc_now

PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")
MARGIN = 56

REGULAR = "helv"
BOLD = "hebo"
ITALIC = "heit"

FOOTER = "This report was generated automatically by the PeerEval system."


class _ReportWriter:
    """Top-to-bottom text layout with automatic page breaks."""

    def __init__(self):
        self.doc = fitz.open()
        self.page = None
        self.y = 0
        self._new_page()

    def _new_page(self):
        self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = MARGIN

    def ensure_space(self, height: float):
        if self.y + height > PAGE_HEIGHT - MARGIN:
            self._new_page()

    def line(self, text: str, size: float = 10, font: str = REGULAR, indent: float = 0, center: bool = False):
        self.ensure_space(size * 1.5)
        x = MARGIN + indent
        if center:
            x = (PAGE_WIDTH - fitz.get_text_length(text, fontname=font, fontsize=size)) / 2
        self.y += size
        self.page.insert_text((x, self.y), text, fontname=font, fontsize=size)
        self.y += size * 0.5

    def paragraph(self, text: str, size: float = 10, font: str = REGULAR, indent: float = 0):
        max_width = PAGE_WIDTH - 2 * MARGIN - indent
        # Helvetica averages about half an em per character
        chars_per_line = max(20, int(max_width / (size * 0.5)))
        for chunk in textwrap.wrap(text, width=chars_per_line) or [""]:
            self.line(chunk, size=size, font=font, indent=indent)

    def gap(self, height: float):
        self.y += height

    def finish(self) -> bytes:
        for page in self.doc:
            width = fitz.get_text_length(FOOTER, fontname=REGULAR, fontsize=8)
            page.insert_text(((PAGE_WIDTH - width) / 2, PAGE_HEIGHT - 28), FOOTER, fontname=REGULAR, fontsize=8)
        data = self.doc.tobytes()
        self.doc.close()
        return data


def render_feedback_report(
    project_title: str,
    survey_title: str,
    survey_description: str,
    deadline,
    student_name: str,
    criteria: List[SurveyCriterion],
    feedback_by_criterion: dict,
    averages: dict,
    total_responses: int,
) -> bytes:
    """
    Render a student's anonymized peer feedback as a PDF document.

    Returns:
        The PDF file contents
    """
    writer = _ReportWriter()

    writer.line("Peer Evaluation Feedback Report", size=20, font=BOLD, center=True)
    writer.gap(8)
    writer.line(f"Project: {project_title}", size=12, center=True)
    writer.line(f"Survey: {survey_title}", size=12, center=True)
    writer.line(f"Student: {student_name}", size=12, center=True)
    writer.line(f"Generated: {get_utc_now():%Y-%m-%d %H:%M} UTC", size=12, center=True)
    writer.gap(12)

    if survey_description:
        writer.line("Description:", font=BOLD)
        writer.paragraph(survey_description)
        writer.gap(8)

    writer.line(f"Deadline: {as_utc(deadline):%Y-%m-%d %H:%M} UTC")
    writer.gap(12)

    writer.line("Summary", size=14, font=BOLD)
    writer.line(f"Total Responses Received: {total_responses}", indent=5)
    writer.line(f"Total Criteria: {len(criteria)}", indent=5)
    writer.line("Note: All feedback has been anonymized to maintain confidentiality.", size=9, font=ITALIC, indent=5)
    writer.gap(10)

    writer.line("Feedback by Criterion", size=14, font=BOLD)
    writer.gap(6)

    for index, criterion in enumerate(criteria, start=1):
        key = str(criterion.id)
        items = feedback_by_criterion.get(key, [])

        writer.ensure_space(40)
        writer.line(f"{index}. {criterion.label}", size=12, font=BOLD)
        writer.line(f"Average Rating: {averages.get(key, 0):.2f} / {criterion.max_rating}", indent=5)
        writer.gap(4)

        if not items:
            writer.line("No feedback received for this criterion.", size=9, indent=10)
        for item in items:
            writer.ensure_space(30)
            writer.line(f"Feedback from {item['anonymousId']}:", size=9, font=BOLD, indent=10)
            writer.line(f"Rating: {item['rating']} / {criterion.max_rating}", size=9, indent=15)
            if item["text"]:
                writer.paragraph(f"Comment: {item['text']}", size=9, indent=15)
            writer.gap(3)
        writer.gap(10)

    return writer.finish()
