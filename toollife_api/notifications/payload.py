"""Payload de notificación de vida útil (email + push)."""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Dict, List

from ..tool_life.models import AlertTier, ToolAlert, format_number


@dataclass(frozen=True)
class AlertNotification:
    tool_id: int
    tool_name: str
    cumulative_usage: float
    threshold: float
    usage_percentage: float
    remaining_life: float
    alert_type: AlertTier
    components: List[str] = field(default_factory=list)

    @classmethod
    def from_alert(cls, alert: ToolAlert) -> "AlertNotification":
        return cls(
            tool_id=alert.tool_id,
            tool_name=alert.tool_name,
            cumulative_usage=alert.cumulative_usage,
            threshold=alert.tool_life_threshold,
            usage_percentage=alert.usage_percentage,
            remaining_life=alert.remaining_life,
            alert_type=alert.alert_type,
            components=list(alert.components_used),
        )

    @property
    def is_critical(self) -> bool:
        return self.alert_type is AlertTier.CRITICAL

    @property
    def push_title(self) -> str:
        if self.is_critical:
            return f"🚨 CRITICAL: Tool {self.tool_id} Replacement Required"
        return f"⚠️ WARNING: Tool {self.tool_id} Nearing End of Life"

    @property
    def push_body(self) -> str:
        return (
            f"{self.tool_name} - {self.usage_percentage:.1f}% used, "
            f"{format_number(self.remaining_life)} units remaining"
        )

    def push_data(self) -> Dict[str, str]:
        # FCM solo acepta valores string en `data`.
        return {
            "type": "TOOL_LIFE_ALERT",
            "tool_id": str(self.tool_id),
            "tool_name": self.tool_name,
            "alert_type": self.alert_type.value,
            "usage_percentage": str(self.usage_percentage),
            "remaining_life": str(self.remaining_life),
        }

    @property
    def email_subject(self) -> str:
        if self.is_critical:
            return f"🚨 CRITICAL: Tool {self.tool_id} - {self.tool_name} Requires Immediate Replacement"
        return f"⚠️ WARNING: Tool {self.tool_id} - {self.tool_name} Nearing End of Life"

    def email_text(self) -> str:
        state = "has reached its tool life limit" if self.is_critical else "is nearing its tool life limit"
        lines = [
            f"Tool {self.tool_id} - {self.tool_name} {state}.",
            "",
            f"Cumulative Usage: {format_number(self.cumulative_usage)} units",
            f"Tool Life Threshold: {format_number(self.threshold)} units",
            f"Remaining Life: {format_number(self.remaining_life)} units",
            f"Usage: {self.usage_percentage:.1f}%",
        ]
        if self.components:
            lines += ["", f"Components Affected: {', '.join(self.components)}"]
        return "\n".join(lines)

    def email_html(self) -> str:
        color = "#dc3545" if self.is_critical else "#ff9800"
        heading = "🚨 CRITICAL ALERT" if self.is_critical else "⚠️ WARNING ALERT"
        action = "Immediate Action Required" if self.is_critical else "Attention Required"
        state = "has reached its tool life limit" if self.is_critical else "is nearing its tool life limit"
        fill = min(self.usage_percentage, 100.0)
        # Nombre y componentes son texto libre del cliente.
        tool_name = html.escape(self.tool_name)

        components_block = ""
        if self.components:
            components_block = (
                '<div class="details"><h3>Components Affected</h3>'
                f"<p>{html.escape(', '.join(self.components))}</p></div>"
            )

        return f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
          <div style="max-width: 600px; margin: 0 auto;">
            <div style="background: {color}; color: white; padding: 20px;">
              <h1 style="margin: 0;">{heading}</h1>
              <p style="margin: 5px 0 0 0;">Tool Life Management System</p>
            </div>
            <div style="background: #f9f9f9; padding: 20px;">
              <h2>{action}</h2>
              <p>Tool <strong>{self.tool_id} - {tool_name}</strong> {state}.</p>
              <div class="details">
                <h3>Usage Statistics</h3>
                <p><strong>Cumulative Usage:</strong> {format_number(self.cumulative_usage)} units</p>
                <p><strong>Tool Life Threshold:</strong> {format_number(self.threshold)} units</p>
                <p><strong>Remaining Life:</strong> {format_number(self.remaining_life)} units</p>
                <div style="background: #e0e0e0; height: 30px;">
                  <div style="background: {color}; width: {fill:.1f}%; height: 100%; color: white; text-align: center;">
                    {self.usage_percentage:.1f}%
                  </div>
                </div>
              </div>
              {components_block}
            </div>
          </div>
        </body>
        </html>
        """
