"""Charts attached to the email export."""

import io
from typing import Dict, Optional

import matplotlib

matplotlib.use('Agg')  # Use non-interactive backend for servers
import matplotlib.pyplot as plt

from my_assistant.constants import EXPENSE_CATEGORIES, format_amount

# Category names are Chinese; fall back through common CJK fonts.
CJK_FONTS = ["Noto Sans CJK TC", "Noto Sans TC", "Microsoft JhengHei", "PingFang TC", "DejaVu Sans"]

# One fixed colour per menu category so the same category looks the same every month.
CATEGORY_COLORS = dict(zip(EXPENSE_CATEGORIES, ['#FF6B6B', '#4ECDC4', '#45B7D1', '#96CEB4', '#FFEAA7', '#B0B0B0']))
FALLBACK_COLOR = '#DDA0DD'


class VisualizationService:
    """Creates charts for the email report."""

    @staticmethod
    def pie_chart(data: Dict[str, float], title: str) -> Optional[io.BytesIO]:
        """Donut chart of per-category totals with the grand total in the hole."""
        if not data:
            return None

        labels = list(data)
        values = [data[label] for label in labels]
        total = sum(values)

        with plt.rc_context({'font.sans-serif': CJK_FONTS, 'axes.unicode_minus': False}):
            fig, ax = plt.subplots(figsize=(8, 6))
            wedges, _, _ = ax.pie(
                values,
                colors=[CATEGORY_COLORS.get(label, FALLBACK_COLOR) for label in labels],
                autopct='%1.1f%%',
                pctdistance=0.78,
                startangle=90,
                counterclock=False,
                wedgeprops={'width': 0.45, 'edgecolor': 'white'},
            )
            ax.text(0, 0, f'NT$ {format_amount(total)}', ha='center', va='center', fontsize=14, fontweight='bold')
            ax.legend(
                wedges,
                [f'{label}  NT$ {format_amount(value)}' for label, value in zip(labels, values)],
                loc='center left',
                bbox_to_anchor=(1.0, 0.5),
                frameon=False,
            )
            ax.set_title(title, fontsize=15, fontweight='bold')
            ax.axis('equal')

            buf = io.BytesIO()
            fig.savefig(buf, format='png', dpi=120, bbox_inches='tight', facecolor='white')
            plt.close(fig)
        buf.seek(0)
        return buf
