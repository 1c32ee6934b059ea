"""Diet plan PDF rendering with reportlab."""

import io
from html import escape
from itertools import groupby

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from dietconnect.models.models import DietPlan

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _day_label(meal) -> str:
    if meal.meal_date is not None:
        return meal.meal_date.strftime("%A, %d %b %Y")
    if meal.day_of_week is not None:
        return DAY_NAMES[meal.day_of_week]
    return "Every day"


def _day_key(meal):
    if meal.meal_date is not None:
        return (0, meal.meal_date.toordinal())
    if meal.day_of_week is not None:
        return (1, meal.day_of_week)
    return (2, 0)


def render_diet_plan_pdf(plan: DietPlan, org_name: str) -> bytes:
    """Render a plan as an A4 document: header, targets, then one table per day."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, title=plan.name)
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Small", fontSize=9, leading=11))

    story = []
    story.append(Paragraph(f"<b>{escape(org_name)}</b>", styles["Title"]))
    story.append(Paragraph(escape(plan.name), styles["Heading1"]))
    if plan.client:
        story.append(Paragraph(f"Prepared for {escape(plan.client.full_name)}", styles["Normal"]))
    if plan.start_date:
        period = plan.start_date.isoformat()
        if plan.end_date:
            period += f" to {plan.end_date.isoformat()}"
        story.append(Paragraph(f"Plan period: {period}", styles["Normal"]))

    targets = []
    if plan.target_calories:
        targets.append(f"{plan.target_calories} kcal/day")
    macros = [
        (plan.target_protein_g, "P"),
        (plan.target_carbs_g, "C"),
        (plan.target_fats_g, "F"),
    ]
    if any(value for value, _ in macros):
        targets.append(" / ".join(f"{value or 0:g}{label}" for value, label in macros) + " (g)")
    if targets:
        story.append(Paragraph("Targets: " + " &bull; ".join(targets), styles["Normal"]))
    if plan.notes_for_client:
        story.append(Spacer(1, 0.1 * inch))
        story.append(Paragraph(escape(plan.notes_for_client), styles["Small"]))
    story.append(Spacer(1, 0.2 * inch))

    meals = sorted(plan.meals, key=lambda m: (_day_key(m), m.time_of_day or "", m.sequence_number or 0))
    for _, day_meals in groupby(meals, key=_day_key):
        day_meals = list(day_meals)
        story.append(Paragraph(f"<b>{_day_label(day_meals[0])}</b>", styles["Heading2"]))

        table_data = [["Meal", "Time", "Foods", "kcal"]]
        for meal in day_meals:
            foods = "<br/>".join(
                f"{escape(item.food_item.name)} ({item.quantity_g:g} g)"
                + (f" [{escape(item.option_label)}]" if item.option_label else "")
                for item in meal.food_items
                if item.food_item is not None
            )
            table_data.append([
                Paragraph(escape(meal.name or meal.meal_type.value.title()), styles["Small"]),
                meal.time_of_day or "",
                Paragraph(foods or "-", styles["Small"]),
                str(meal.total_calories or 0),
            ])
        t = Table(table_data, hAlign="LEFT", colWidths=[1.5 * inch, 0.7 * inch, 3.6 * inch, 0.6 * inch])
        t.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.4, colors.grey),
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]))
        story.append(t)

        for meal in day_meals:
            if meal.instructions:
                story.append(Paragraph(
                    f"<b>{escape(meal.name or meal.meal_type.value.title())}:</b> {escape(meal.instructions)}",
                    styles["Small"],
                ))
        story.append(Spacer(1, 0.2 * inch))

    doc.build(story)
    return buf.getvalue()
