# backend/roamplan/services/export_service.py

from typing import List

from roamplan.models.budget_models import BudgetBreakdown
from roamplan.models.itinerary_models import ItineraryIn


def _cell(text: str) -> str:
    return (text or "").replace("|", "\\|").replace("\n", " ")


def _end_time(start: str, duration_min: int) -> str:
    h, m = map(int, start.split(":"))
    total = h * 60 + m + duration_min
    day_offset, minutes = divmod(total, 24 * 60)
    end = f"{minutes // 60:02d}:{minutes % 60:02d}"
    return end + (f" (+{day_offset}d)" if day_offset else "")


def render_markdown(itinerary: ItineraryIn, budget: BudgetBreakdown) -> str:
    """Printable Markdown version of an itinerary with its budget."""
    lines: List[str] = [
        f"# {itinerary.title}",
        "",
        f"**Destination:** {itinerary.destination}  ",
        f"**Dates:** {itinerary.start_date.isoformat()} → {itinerary.end_date.isoformat()} ({itinerary.timezone})  ",
        f"**Travelers:** {itinerary.travelers}  ",
        f"**Budget tier:** {itinerary.budget_tier}",
        "",
    ]

    for day in itinerary.days:
        heading = f"## Day {day.day_number}"
        if day.date:
            heading += f" ({day.date.isoformat()})"
        lines += [heading, ""]

        if not day.activities:
            lines += ["_Free day_", ""]
            continue

        lines += [
            "| Time | Activity | Category | Cost |",
            "| --- | --- | --- | ---: |",
        ]
        for a in day.activities:
            lines.append(
                f"| {a.start_time}-{_end_time(a.start_time, a.duration_min)} "
                f"| {_cell(a.name)} | {a.category} | {a.cost} {itinerary.currency} |"
            )
        lines.append("")

    lines += [
        "## Budget",
        "",
        f"- Total: {budget.total} {budget.currency}",
    ]
    for category, amount in budget.by_category.items():
        lines.append(f"- {category}: {amount} {budget.currency}")
    if budget.budget_limit is not None:
        status = "within budget" if budget.within_budget else "over budget"
        lines.append(f"- Limit: {budget.budget_limit} {budget.currency} ({status}, remaining {budget.remaining})")

    return "\n".join(lines) + "\n"
