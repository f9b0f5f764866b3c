from .callback_tokens import (
    BrowseAction,
    CallbackToken,
    MalformedCallbackToken,
    UnencodableCallbackToken,
    decode_callback_token,
)

__all__ = [
    "BrowseAction",
    "CallbackToken",
    "MalformedCallbackToken",
    "UnencodableCallbackToken",
    "decode_callback_token",
]
