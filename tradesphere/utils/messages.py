# tradesphere/utils/messages.py


class Messages:
    """Response messages shown to API clients"""
    ORDER_PLACED = "Order placed successfully"
    PAYMENT_VERIFIED = "Payment verified successfully"
    TRANSFER_SUBMITTED = "Bank transfer details submitted. Awaiting verification."
    PAYMENT_APPROVED = "Payment approved successfully"
    STATUS_UPDATED = "Order status updated"
    SERVER_ERROR = "Server Error"
    VENDOR_REQUIRED = "Access denied. Vendor role required."

    @staticmethod
    def invalid_request(detail: str) -> str:
        return f"Invalid request: {detail}"
