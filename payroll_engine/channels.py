"""
Sales Channels

Both channels run through the same reconciliation and resolution code.
A ChannelProfile describes what differs between them.
"""

from dataclasses import dataclass

NORMAL = "normal"
FIDIUM = "fidium"

PERSONAL = "personal"
MANAGER = "manager"


@dataclass(frozen=True)
class ChannelProfile:
    """Capabilities and storage layout of one sales channel."""

    name: str
    has_upgrade_flag: bool
    entry_table: str
    entry_key_fields: tuple[str, ...]
    agent_key_field: str  # Agent attribute holding the channel's seller id
    personal_payscale_field: str
    manager_payscale_field: str
    seller_table: str
    seller_key_field: str

    def payscale_field(self, role: str) -> str:
        if role == PERSONAL:
            return self.personal_payscale_field
        if role == MANAGER:
            return self.manager_payscale_field
        raise ValueError(f"Invalid payscale role: {role}. Must be 'personal' or 'manager'")

    def entry_key(self, record: dict) -> tuple:
        return tuple(record.get(f) for f in self.entry_key_fields)

    def catalog_filter(self) -> dict:
        """Store filter for catalog rows of this channel; rows without a channel are normal."""
        if self.name == NORMAL:
            return {"channel": [NORMAL, None]}
        return {"channel": self.name}


NORMAL_CHANNEL = ChannelProfile(
    name=NORMAL,
    has_upgrade_flag=True,
    entry_table="normal_sale_entries",
    entry_key_fields=("order_number",),
    agent_key_field="identifier",
    personal_payscale_field="personal_payscale_id",
    manager_payscale_field="manager_payscale_id",
    seller_table="agents",
    seller_key_field="identifier",
)

FIDIUM_CHANNEL = ChannelProfile(
    name=FIDIUM,
    has_upgrade_flag=False,
    entry_table="fidium_sale_entries",
    entry_key_fields=("order_number", "plan_name"),
    agent_key_field="fidium_identifier",
    personal_payscale_field="fidium_personal_payscale_id",
    manager_payscale_field="fidium_manager_payscale_id",
    seller_table="fidium_sales_reps",
    seller_key_field="rep_name",
)

CHANNELS = {
    NORMAL: NORMAL_CHANNEL,
    FIDIUM: FIDIUM_CHANNEL,
}


def get_channel(name: str) -> ChannelProfile:
    """Look up a channel profile by name."""
    try:
        return CHANNELS[name]
    except KeyError:
        raise ValueError(f"Invalid channel: {name}. Must be 'normal' or 'fidium'") from None
