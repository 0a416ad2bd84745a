"""PDF generation for staffing sheets.

A staffing sheet is a one-operation printout for the ramp office showing:
- Operation details and staffing levels
- Needed skills, marked covered or uncovered by the proposed crew
- The proposed crew with recommendation scores
- Shortage warnings and suggestions
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from groundops.scheduling.optimizer import StaffingOptimization

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "covered": (0.4, 0.7, 0.4),  # Green
    "uncovered": (0.85, 0.35, 0.35),  # Red
    "header_row": (0.85, 0.85, 0.9),
    "alt_row": (0.95, 0.95, 0.95),
    "shortage": (0.8, 0.1, 0.1),
}


def _require_reportlab():
    try:
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.pdfgen import canvas
    except ImportError:
        raise ImportError(
            "reportlab is required for PDF generation. "
            "Install with: pip install reportlab"
        )
    return canvas, landscape(letter)


class StaffingSheetGenerator:
    """Generates printable staffing sheets.

    Example:
        >>> generator = StaffingSheetGenerator()
        >>> generator.generate(optimizer.optimize_staffing(42), "op42.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        optimization: StaffingOptimization,
        output_path: Union[str, Path],
    ) -> None:
        """Generate a staffing sheet and save it to a file.

        Args:
            optimization: Result of StaffingOptimizer.optimize_staffing.
            output_path: Path to save the PDF.
        """
        canvas, pagesize = _require_reportlab()
        c = canvas.Canvas(str(output_path), pagesize=pagesize)
        self._draw(c, optimization)
        c.save()

    def generate_to_buffer(self, optimization: StaffingOptimization) -> BytesIO:
        """Generate a staffing sheet and return it as a bytes buffer."""
        canvas, pagesize = _require_reportlab()
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=pagesize)
        self._draw(c, optimization)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(self, c, optimization: StaffingOptimization) -> None:
        y = self._draw_header(c, optimization)
        y = self._draw_levels(c, optimization, y)
        y = self._draw_skills(c, optimization, y)
        y = self._draw_crew(c, optimization, y)
        self._draw_suggestions(c, optimization, y)
        c.showPage()

    def _new_page_if_needed(self, c, y: float, needed: float) -> float:
        if y - needed >= self.margin:
            return y
        c.showPage()
        return self.page_height - self.margin - 20

    def _draw_header(self, c, optimization: StaffingOptimization) -> float:
        """Draw the title and operation details."""
        operation = optimization.operation
        top = self.page_height - self.margin - 20

        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            top,
            f"Staffing Sheet - {operation.flight_number} ({operation.operation_type.value})",
        )

        c.setFont("Helvetica", 10)
        c.drawString(
            self.margin,
            top - 15,
            f"{operation.scheduled_time.strftime('%A, %B %d, %Y %H:%M')}  |  "
            f"Station: {operation.station.name}  |  "
            f"{operation.flight_type.value.title()}  |  "
            f"Passengers: {operation.passenger_count}",
        )
        return top - 45

    def _draw_levels(self, c, optimization: StaffingOptimization, y: float) -> float:
        """Draw staffing levels and shortage status."""
        plan = optimization.plan

        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Staffing Levels")
        y -= 18

        c.setFont("Helvetica", 10)
        stats = [
            f"Base staff for passengers: {plan.base_staff}",
            f"Minimum staff: {plan.minimum_staff}",
            f"Recommended staff: {plan.recommended_staff}",
            f"Available staff: {optimization.available}",
        ]
        for stat in stats:
            c.drawString(self.margin + 20, y, stat)
            y -= 14

        if optimization.shortage:
            c.setFillColorRGB(*COLORS["shortage"])
            c.setFont("Helvetica-Bold", 10)
            c.drawString(
                self.margin + 20,
                y,
                f"SHORTAGE: {optimization.shortage} below minimum",
            )
            c.setFillColorRGB(0, 0, 0)
            y -= 14

        return y - 10

    def _draw_skills(self, c, optimization: StaffingOptimization, y: float) -> float:
        """Draw needed skills as colored chips."""
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Skills Needed")
        y -= 20

        uncovered = set(optimization.uncovered_skills)
        c.setFont("Helvetica", 8)
        x = self.margin + 20
        for skill in optimization.plan.skills_needed:
            label = skill.replace("_", " ")
            width = c.stringWidth(label, "Helvetica", 8) + 12
            if x + width > self.page_width - self.margin:
                x = self.margin + 20
                y -= 18
            key = "uncovered" if skill in uncovered else "covered"
            c.setFillColorRGB(*COLORS[key])
            c.rect(x, y - 4, width, 14, fill=1, stroke=0)
            c.setFillColorRGB(0, 0, 0)
            c.drawString(x + 6, y, label)
            x += width + 6

        return y - 30

    def _draw_crew(self, c, optimization: StaffingOptimization, y: float) -> float:
        """Draw the proposed crew as a table."""
        c.setFont("Helvetica-Bold", 12)
        c.drawString(
            self.margin,
            y,
            f"Proposed Crew ({len(optimization.recommended_assignments)}, "
            f"{optimization.solver_status})",
        )
        y -= 20

        columns = [
            ("Name", 0),
            ("Role", 170),
            ("Score", 260),
            ("Skills", 310),
        ]
        row_height = 16
        table_width = self.page_width - 2 * self.margin

        def draw_column_header(top: float) -> None:
            c.setFillColorRGB(*COLORS["header_row"])
            c.rect(self.margin, top - 4, table_width, row_height, fill=1, stroke=0)
            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica-Bold", 9)
            for title, offset in columns:
                c.drawString(self.margin + 4 + offset, top, title)

        draw_column_header(y)
        y -= row_height

        c.setFont("Helvetica", 9)
        for index, recommended in enumerate(optimization.recommended_assignments):
            new_y = self._new_page_if_needed(c, y, row_height)
            if new_y != y:
                y = new_y
                draw_column_header(y)
                y -= row_height
                c.setFont("Helvetica", 9)

            if index % 2:
                c.setFillColorRGB(*COLORS["alt_row"])
                c.rect(self.margin, y - 4, table_width, row_height, fill=1, stroke=0)
                c.setFillColorRGB(0, 0, 0)

            staff = recommended.staff
            skills = ", ".join(sorted(staff.skills or ())) or "-"
            c.drawString(self.margin + 4, y, staff.name[:30])
            c.drawString(self.margin + 4 + 170, y, staff.role.value)
            c.drawString(self.margin + 4 + 260, y, str(recommended.score))
            c.drawString(self.margin + 4 + 310, y, skills[:80])
            y -= row_height

        return y - 14

    def _draw_suggestions(self, c, optimization: StaffingOptimization, y: float) -> None:
        """Draw suggestions, if any."""
        if not optimization.suggestions:
            return

        y = self._new_page_if_needed(c, y, 20 + 14 * len(optimization.suggestions))
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Suggestions")
        y -= 18

        c.setFont("Helvetica", 10)
        for suggestion in optimization.suggestions:
            c.drawString(self.margin + 20, y, f"- {suggestion}")
            y -= 14
