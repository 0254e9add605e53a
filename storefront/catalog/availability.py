"""
Cart availability reconciliation

Compares a client-held cart against the authoritative product rows and
computes one patch per cart line that the client must apply before checkout.

Patch types (checked in this order, first match wins):
    remove            quantity is missing, fractional or below 1
    mark_unavailable  product deleted (reason `not_found`) or not sellable
                      (reason `out_of_stock`)
    update_quantity   requested quantity exceeds what can be sold (stock, unique
                      products, MAX_LINE_QUANTITY); carries the
                      server `price` too when it also changed
    update_price      client price differs from the server price
"""
from decimal import Decimal, InvalidOperation
import logging
from .models import Product

logger = logging.getLogger(__name__)

PATCH_REMOVE = 'remove'
PATCH_MARK_UNAVAILABLE = 'mark_unavailable'
PATCH_UPDATE_QUANTITY = 'update_quantity'
PATCH_UPDATE_PRICE = 'update_price'

REASON_INVALID_QUANTITY = 'invalid_quantity'
REASON_NOT_FOUND = 'not_found'
REASON_OUT_OF_STOCK = 'out_of_stock'

# Per-line ceiling; larger requests are clamped like a stock shortage
MAX_LINE_QUANTITY = 1000

ID_KEYS = ('id', 'product_id', '_id')


def _item_id(item):
    for key in ID_KEYS:
        if item.get(key) not in (None, ''):
            return item[key]
    return None


def parse_product_id(value):
    """Integer product id, or None when the value cannot be one"""
    if isinstance(value, bool):
        return None
    try:
        product_id = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return product_id if product_id > 0 else None


def parse_quantity(value):
    """Whole positive quantity, or None"""
    if isinstance(value, bool) or value is None:
        return None
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not quantity.is_finite() or quantity != quantity.to_integral_value() or quantity < 1:
        return None
    return int(quantity)


def parse_price(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return price if price.is_finite() else None


def merge_cart_items(items):
    """Collapse duplicate cart lines, keeping first-seen order

    Returns:
        list of dicts: {key, product_id, quantity, price, name}; `quantity` is
        None when any occurrence of the line had an unusable quantity.
    """
    merged = {}
    for item in items:
        raw_id = _item_id(item)
        product_id = parse_product_id(raw_id)
        key = str(product_id) if product_id is not None else str(raw_id)
        quantity = parse_quantity(item.get('quantity'))

        line = merged.get(key)
        if line is None:
            merged[key] = {
                'key': raw_id,
                'product_id': product_id,
                'quantity': quantity,
                'price': parse_price(item.get('price')),
                'name': item.get('name'),
                'valid_quantity': quantity is not None,
            }
            continue

        line['valid_quantity'] = line['valid_quantity'] and quantity is not None
        if line['valid_quantity']:
            line['quantity'] += quantity
        else:
            line['quantity'] = None

    for line in merged.values():
        del line['valid_quantity']
    return list(merged.values())


def collect_product_ids(items):
    """Distinct valid product ids referenced by cart items"""
    ids = []
    for item in items:
        product_id = parse_product_id(_item_id(item))
        if product_id is not None and product_id not in ids:
            ids.append(product_id)
    return ids


def load_products(product_ids, lock=False):
    """Fetch products by id as a dict; `lock` takes row locks for checkout"""
    queryset = Product.objects.filter(id__in=product_ids)
    if lock:
        queryset = queryset.select_for_update()
    return {product.id: product for product in queryset}


def sellable_quantity(product, requested):
    """Largest quantity of `product` that can be sold, capped at `requested`"""
    allowed = min(requested, MAX_LINE_QUANTITY)
    if product.is_unique:
        allowed = min(allowed, 1)
    if product.tracks_quantity:
        allowed = min(allowed, max(product.stock_quantity, 0))
    return allowed


def reconcile_cart(items, products):
    """Reconcile client cart lines against authoritative products

    Args:
        items: list of client cart dicts ({id, quantity, price?, name?})
        products: dict of product id -> Product

    Returns:
        dict with `valid`, `unavailable_items`, `updates_to_apply`, `items`
        (authoritative lines for sellable products) and `total`
    """
    unavailable_items = []
    updates = []
    lines = []
    total = Decimal('0.00')

    for line in merge_cart_items(items):
        key = line['key']
        product = products.get(line['product_id']) if line['product_id'] is not None else None
        display_name = product.name if product else line['name']

        if line['quantity'] is None:
            updates.append({'type': PATCH_REMOVE, 'id': key, 'reason': REASON_INVALID_QUANTITY})
            unavailable_items.append({'id': key, 'name': display_name, 'reason': REASON_INVALID_QUANTITY})
            continue

        if product is None:
            updates.append({'type': PATCH_MARK_UNAVAILABLE, 'id': key, 'reason': REASON_NOT_FOUND})
            unavailable_items.append({'id': key, 'name': display_name, 'reason': REASON_NOT_FOUND})
            continue

        if not product.is_available():
            updates.append({'type': PATCH_MARK_UNAVAILABLE, 'id': key, 'reason': REASON_OUT_OF_STOCK})
            unavailable_items.append({'id': key, 'name': display_name, 'reason': REASON_OUT_OF_STOCK})
            continue

        requested = line['quantity']
        allowed = sellable_quantity(product, requested)
        price_changed = line['price'] is not None and line['price'] != product.price

        if allowed < requested:
            patch = {'type': PATCH_UPDATE_QUANTITY, 'id': key, 'quantity': allowed}
            if price_changed:
                patch['price'] = str(product.price)
            updates.append(patch)
        elif price_changed:
            updates.append({'type': PATCH_UPDATE_PRICE, 'id': key, 'price': str(product.price)})

        line_total = product.price * allowed
        total += line_total
        lines.append({
            'id': product.id,
            'name': product.name,
            'price': str(product.price),
            'quantity': allowed,
            'image_url': product.main_image_url,
            'line_total': str(line_total),
        })

    if updates:
        logger.info(f"Cart reconciliation produced {len(updates)} patch(es) for {len(lines)} sellable line(s)")

    return {
        'valid': not updates,
        'unavailable_items': unavailable_items,
        'updates_to_apply': updates,
        'items': lines,
        'total': str(total.quantize(Decimal('0.01'))),
    }
