"""Prompt construction for the inventory assistant."""

from __future__ import annotations

from typing import Dict, List, Optional

from app.services.inventory_snapshot import InventoryItem, InventorySnapshot

REORDER_FORECAST = "reorder-forecast"
COST_OPTIMIZER = "cost-optimizer"
WASTE_REDUCTION = "waste-reduction"
INVENTORY_REPORTS = "inventory-reports"

PREAMBLE = (
    "You are an AI assistant that helps restaurant owners optimize their inventory management. \n"
    "You have access to the following inventory data:\n"
)

TASK_TEMPLATES: Dict[str, str] = {
    REORDER_FORECAST: """
Based on the inventory data, create detailed reorder suggestions. For each item that's below or approaching its reorder point:
1. Calculate how many days until stockout based on usage rates
2. Suggest reorder quantities to reach par levels
3. Prioritize items (high, medium, low) based on urgency
4. Provide reasoning for each suggestion

Format each suggestion as its own paragraph, separated by a blank line, starting with the item name:
- Item name
- Current stock
- Recommended reorder amount
- Priority level
- Days until stockout
- Brief reasoning

Include business insights on ordering patterns and potential optimizations.

Finish with a fenced ```json block of the form
{"suggestions": [{"name": "...", "priority": "high|medium|low", "daysUntilStockout": 0, "reasoning": "..."}]}
""",
    COST_OPTIMIZER: """
Analyze the inventory cost data and suggest detailed cost saving opportunities:
1. Identify items with high price volatility or recent price increases
2. Calculate potential savings for each suggestion
3. Provide actionable recommendations (e.g., bulk purchases, supplier changes, etc.)
4. Prioritize suggestions based on potential impact

Format each suggestion with:
- Item name
- Current cost
- Potential savings (amount and percentage)
- Implementation difficulty (easy, medium, hard)
- Detailed recommendation
- Alternative suppliers if applicable

Include broader insights on cost trends and strategic purchasing opportunities.
""",
    WASTE_REDUCTION: """
Based on the waste log data, provide actionable waste reduction tips:
1. Identify patterns in waste causes (e.g., overproduction, spoilage)
2. Suggest specific process improvements to reduce waste
3. Estimate monthly cost savings per suggestion
4. Categorize tips (storage, ordering, preparation, training, menu design)

Format each tip with:
- Clear, actionable title
- Detailed explanation
- Expected impact (high, medium, low)
- Estimated monthly savings
- Implementation difficulty
- Category

Include industry best practices and innovative approaches to waste reduction.
""",
    INVENTORY_REPORTS: """
Generate a comprehensive inventory analysis report with:
1. Summary of total inventory value and distribution by category
2. Key insights on inventory health (turnover, discrepancies, etc.)
3. Usage trend analysis for major categories
4. Projected inventory needs for the next 1-3 months
5. Recommendations for optimizing inventory levels

Format the report with:
- Clear sections with headings
- Bullet points for key insights
- Specific metrics and percentages
- Actionable recommendations

Include data visualization descriptions that could help interpret the data.
""",
}

GENERAL_ADVICE_TEMPLATE = """
Please provide general inventory management advice based on the data provided.
"""

CLOSING = """
Respond in a professional, helpful tone. Use specific numbers and data points from the inventory to make your response detailed and relevant.
"""

REQUEST_TYPES = tuple(TASK_TEMPLATES)


def _format_number(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return str(number)


def _or_na(value: Optional[float]) -> str:
    # Zero reads as "not set" in the stored documents.
    if not value:
        return "N/A"
    return _format_number(value)


def _ingredient_line(item: InventoryItem) -> str:
    quantity = "N/A" if item.quantity is None else _format_number(item.quantity)
    return (
        f"{item.name}: Quantity: {quantity} {item.unit}, "
        f"Cost: ${_or_na(item.cost)}, Par: {_or_na(item.par)}, "
        f"Reorder Point: {_or_na(item.reorder_point)}"
    )


def _activity_line(snapshot: InventorySnapshot) -> str:
    return (
        f"RECENT ACTIVITY: {len(snapshot.recent_stock_events)} stock adjustments, "
        f"{len(snapshot.recent_purchase_orders)} purchase orders, "
        f"{len(snapshot.recent_waste_entries)} waste entries"
    )


def build_brief(snapshot: InventorySnapshot, request_type: str) -> str:
    """Return the system prompt describing the inventory and the task."""

    lines: List[str] = [_ingredient_line(item) for item in snapshot.items]
    sections: List[str] = [
        PREAMBLE,
        f"INGREDIENTS ({len(snapshot.items)} items):",
        "\n".join(lines),
        "",
        _activity_line(snapshot),
        "",
        TASK_TEMPLATES.get(request_type, GENERAL_ADVICE_TEMPLATE),
        CLOSING,
    ]
    return "\n".join(sections)


def build_user_instruction(request_type: str) -> str:
    """Fixed user turn sent alongside the brief."""

    label = request_type.replace("-", " ", 1)
    return f"Please analyze my restaurant's inventory data and provide {label} recommendations."


__all__ = [
    "COST_OPTIMIZER",
    "INVENTORY_REPORTS",
    "REORDER_FORECAST",
    "REQUEST_TYPES",
    "WASTE_REDUCTION",
    "build_brief",
    "build_user_instruction",
]
