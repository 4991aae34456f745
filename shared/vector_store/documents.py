"""Text rendering of products and orders for the semantic index."""


def product_tag(product_id) -> dict:
    return {"entity": "product", "productId": str(product_id)}


def product_doc_id(product_id) -> str:
    return f"product-{product_id}"


def order_doc_id(order_id: str) -> str:
    return f"order-{order_id}"


def order_tag(order_id: str) -> dict:
    return {"entity": "order", "orderId": order_id}


def render_product(product) -> str:
    price = f"{product.price:.2f}" if product.price is not None else "n/a"
    return (
        f"Product Name: {product.name}\n"
        f"Description: {product.description}\n"
        f"Brand: {product.brand}\n"
        f"Category: {product.category}\n"
        f"Price: {price}\n"
        f"Release Date: {product.release_date}\n"
        f"Available: {str(bool(product.product_available)).lower()}\n"
        f"Stock: {product.stock_quantity}\n"
    )


def render_order(order) -> str:
    lines = [
        "Order Summary:",
        f"Order ID: {order.order_id}",
        f"Customer: {order.customer_name}",
        f"Email: {order.email}",
        f"Date: {order.order_date.isoformat()}",
        f"Status: {order.status}",
        "Products:",
    ]
    for item in order.items:
        lines.append(f"- {item.product.name} x {item.quantity} = ₹{item.total_price:.2f}")
    return "\n".join(lines) + "\n"
