"""
User-facing notices produced by lifecycle transitions.

The language is always passed in by the caller; nothing here reads request
or user state.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .entities import ADMIN_POOL
from .machine import Transition
from .states import Action, ActorRole

SUPPORTED_LANGUAGES = ("id", "en")


@dataclass(frozen=True)
class Notice:
    recipient_id: str
    title: str
    message: str
    related_order_id: Optional[int]


# (title, message) templates keyed by action then language.
_TEMPLATES: Dict[Action, Dict[str, Tuple[str, str]]] = {
    Action.CREATE: {
        "id": ("Pesanan Baru Masuk", "Pesanan #{order_id} masuk dan menunggu konfirmasi."),
        "en": ("New Order", "Order #{order_id} was placed and awaits confirmation."),
    },
    Action.CONFIRM_AND_ASSIGN: {
        "id": ("Pesanan Dikonfirmasi", "Pesanan #{order_id} sudah dikonfirmasi dan petugas sedang menuju lokasi."),
        "en": ("Order Confirmed", "Order #{order_id} is confirmed and a cleaner is on the way."),
    },
    Action.UPLOAD_AFTER_PHOTO: {
        "id": ("Foto Sesudah Diunggah", "Foto sesudah untuk pesanan #{order_id} sudah diunggah."),
        "en": ("After Photo Uploaded", "The after photo for order #{order_id} was uploaded."),
    },
    Action.COMPLETE: {
        "id": ("Pesanan Selesai", "Pesanan #{order_id} telah selesai. Terima kasih!"),
        "en": ("Order Completed", "Order #{order_id} is completed. Thank you!"),
    },
    Action.CANCEL: {
        "id": ("Pesanan Dibatalkan", "Pesanan #{order_id} telah dibatalkan."),
        "en": ("Order Cancelled", "Order #{order_id} was cancelled."),
    },
    Action.SUBMIT_RATING: {
        "id": ("Rating Baru", "Pesanan #{order_id} mendapat rating {rating}/5."),
        "en": ("New Rating", "Order #{order_id} was rated {rating}/5."),
    },
    Action.SUBMIT_TIP: {
        "id": ("Tip Diterima", "Pelanggan memberi tip Rp {tip} untuk pesanan #{order_id}."),
        "en": ("Tip Received", "The customer tipped Rp {tip} for order #{order_id}."),
    },
    Action.DELETE: {
        "id": ("Pesanan Dihapus", "Pesanan #{order_id} telah dihapus."),
        "en": ("Order Deleted", "Order #{order_id} was deleted."),
    },
    Action.MARK_PAYMENT_PAID: {
        "id": ("Pembayaran Berhasil", "Pembayaran untuk pesanan #{order_id} telah berhasil. Terima kasih!"),
        "en": ("Payment Received", "Payment for order #{order_id} was received. Thank you!"),
    },
    Action.MARK_PAYMENT_FAILED: {
        "id": ("Pembayaran Gagal", "Pembayaran untuk pesanan #{order_id} gagal. Silakan coba lagi."),
        "en": ("Payment Failed", "Payment for order #{order_id} failed. Please try again."),
    },
    Action.SWITCH_PAYMENT_TO_CASH: {
        "id": ("Metode Pembayaran Diubah", "Pembayaran pesanan #{order_id} diubah menjadi tunai di lokasi."),
        "en": ("Payment Method Changed", "Order #{order_id} will now be paid in cash on site."),
    },
    Action.CHANGE_PAYMENT_METHOD: {
        "id": ("Metode Pembayaran Diubah", "Pelanggan mengubah pembayaran pesanan #{order_id} menjadi {method}."),
        "en": ("Payment Method Changed", "The customer switched order #{order_id} to {method}."),
    },
}

_TIP_SKIPPED = {
    "id": ("Tip Dilewati", "Pelanggan melewati tip untuk pesanan #{order_id}."),
    "en": ("Tip Skipped", "The customer skipped the tip for order #{order_id}."),
}


def _recipient(transition: Transition) -> str:
    order = transition.order
    action = transition.action
    if action in (Action.COMPLETE, Action.CANCEL):
        # Tell the side that did not act.
        return ADMIN_POOL if transition.actor.role == ActorRole.CUSTOMER else order.customer_id
    if action == Action.SUBMIT_TIP:
        return order.assigned_staff_id or ADMIN_POOL
    if action in (
        Action.CREATE,
        Action.UPLOAD_AFTER_PHOTO,
        Action.SUBMIT_RATING,
        Action.DELETE,
        Action.CHANGE_PAYMENT_METHOD,
    ):
        return ADMIN_POOL
    return order.customer_id


def build_notice(transition: Transition, language: str) -> Notice:
    if language not in SUPPORTED_LANGUAGES:
        language = SUPPORTED_LANGUAGES[0]
    order = transition.order
    templates = _TEMPLATES[transition.action]
    if transition.action == Action.SUBMIT_TIP and order.tip_skipped:
        templates = _TIP_SKIPPED
    title, message = templates[language]
    message = message.format(
        order_id=order.id,
        rating=order.rating.value if order.rating else "",
        tip=f"{order.tip_amount or 0:,}".replace(",", "."),
        method=transition.payment.method.value,
    )
    return Notice(
        recipient_id=_recipient(transition),
        title=title,
        message=message,
        related_order_id=order.id,
    )
