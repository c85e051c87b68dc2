"""
Management command: place an order from the command line.
Example: manage.py place_order --customer 1001 --restaurant 2001 --address 3001 --item 4010:2 --item 4011:1
"""
from django.core.management.base import BaseCommand, CommandError

from core import services
from core.exceptions import FoodExpressError


def _parse_item(value):
    try:
        item_id, qty = value.split(':', 1)
        return int(item_id), int(qty)
    except ValueError:
        raise CommandError(f'--item must be ITEM_ID:QTY (got {value!r})')


class Command(BaseCommand):
    help = 'Place an order with a pending payment and print the new order id'

    def add_arguments(self, parser):
        parser.add_argument('--customer', type=int, required=True)
        parser.add_argument('--restaurant', type=int, required=True)
        parser.add_argument('--address', type=int, required=True)
        parser.add_argument('--item', action='append', required=True, help='ITEM_ID:QTY, repeatable')
        parser.add_argument('--method', default=None, help='Payment method (default FOODEXPRESS_PAYMENT_METHOD)')
        parser.add_argument('--skip-unknown', action='store_true', help='Drop unknown item ids instead of failing')

    def handle(self, *args, **options):
        items = [_parse_item(v) for v in options['item']]
        try:
            order_id = services.place_order(
                options['customer'],
                options['restaurant'],
                options['address'],
                items,
                payment_method=options['method'],
                unknown_items='skip' if options['skip_unknown'] else None,
            )
        except FoodExpressError as e:
            raise CommandError(f'{e.code}: {e}')
        self.stdout.write(str(order_id))
