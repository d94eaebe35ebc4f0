"""
Lark Interactive Card
=====================

Structured message for the card-capable provider: a colored header,
ordered markdown field blocks and one link button.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class CardField:
    content: str
    is_short: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_short": self.is_short,
            "text": {"tag": "lark_md", "content": self.content},
        }


@dataclass
class CardAction:
    text: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": "action",
            "actions": [
                {
                    "tag": "button",
                    "text": {"tag": "plain_text", "content": self.text},
                    "type": "primary",
                    "url": self.url,
                }
            ],
        }


@dataclass
class LarkCard:
    """
    Lark (Feishu) interactive card.

    Fields are grouped into `div` blocks: adding a field with
    `new_block=True` opens a new block, otherwise it joins the last one.
    """
    header_color: str = "grey"
    header_title: str = ""
    wide_screen: bool = True
    blocks: list[list[CardField]] = field(default_factory=list)
    action: Optional[CardAction] = None

    def set_header(self, color: str, title: str) -> None:
        self.header_color = color
        self.header_title = title

    def add_field(self, content: str, new_block: bool = False) -> None:
        if new_block or not self.blocks:
            self.blocks.append([])
        self.blocks[-1].append(CardField(content))

    def set_action(self, text: str, url: str) -> None:
        self.action = CardAction(text, url)

    @property
    def fields(self) -> list[CardField]:
        """All fields in display order."""
        return [f for block in self.blocks for f in block]

    def to_dict(self) -> dict[str, Any]:
        elements: list[dict[str, Any]] = [
            {"tag": "div", "fields": [f.to_dict() for f in block]}
            for block in self.blocks
        ]
        if self.action is not None:
            elements.append(self.action.to_dict())
        return {
            "config": {"wide_screen_mode": self.wide_screen, "enable_forward": True},
            "header": {
                "template": self.header_color,
                "title": {"tag": "plain_text", "content": self.header_title},
            },
            "i18n_elements": {"zh_cn": elements},
        }


def build_card(
    color: str,
    title: str,
    base_fields: list[str],
    job_fields: list[str],
    button_text: str,
    url: str,
) -> LarkCard:
    """
    Assemble a card in the same order as the flat markdown body:
    base info fields share one block, each job gets its own block.
    """
    card = LarkCard()
    card.set_header(color, title.strip())
    for idx, content in enumerate(base_fields):
        card.add_field(content.strip(), new_block=idx == 0)
    for content in job_fields:
        card.add_field(content.strip(), new_block=True)
    card.set_action(button_text, url)
    return card
