import unittest
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.config import Config
from storefront.models import CustomerInfo, Order, OrderItem, ShippingZone
from storefront.routers.orders import next_order_number

ADMIN = {'x-admin-key': 'test-key'}

CUSTOMER = {'name': 'Ayesha Khan', 'email': 'ayesha@example.com', 'phone': '+92 300 0000000'}
ADDRESS = {'street': '1 Mall Road', 'city': 'Lahore', 'country': 'Pakistan'}


def _order(number):
    return Order(
        orderNumber=number,
        customer=CustomerInfo(name='x', email='x@example.com'),
        items=[OrderItem(productId='1', name='x', price=1, quantity=1)],
        total=1,
    )


class TestOrderNumbers(unittest.TestCase):
    def test_next_order_number(self):
        self.assertEqual(next_order_number([]), 'ORD-001')
        orders = [_order('ORD-001'), _order('ord-041'), _order('CUSTOM')]
        self.assertEqual(next_order_number(orders), 'ORD-042')


class TestOrders(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(Config(admin_key='test-key')))

    def _create(self, **extra):
        body = {'customer': CUSTOMER, 'items': [{'productId': '1', 'quantity': 2}], 'shippingAddress': ADDRESS}
        body.update(extra)
        return self.client.post('/api/orders', json=body)

    def test_create_backfills_from_catalog(self):
        r = self._create()
        self.assertEqual(r.status_code, 201, r.text)
        order = r.json()['data']
        self.assertEqual(order['orderNumber'], 'ORD-003')
        self.assertEqual(order['items'][0]['name'], 'Gold Bracelet')
        self.assertEqual(order['items'][0]['price'], 1500)
        self.assertEqual(order['subtotal'], 3000)
        self.assertEqual(order['total'], 3000)
        self.assertEqual(order['status'], 'pending')
        self.assertEqual(order['paymentMethod'], 'cod')

        again = self._create().json()['data']
        self.assertEqual(again['orderNumber'], 'ORD-004')

    def test_shipping_method_applied(self):
        r = self._create(shippingMethodId='1')
        self.assertEqual(r.status_code, 201, r.text)
        order = r.json()['data']
        self.assertEqual(order['shipping'], 200)
        self.assertEqual(order['total'], 3200)

        free = self._create(shippingMethodId='1', items=[{'productId': '4', 'quantity': 1}]).json()['data']
        self.assertEqual(free['shipping'], 0)
        self.assertEqual(free['total'], 5000)

    def test_inactive_shipping_method_rejected(self):
        r = self._create(shippingMethodId='3')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['detail'], 'Shipping method not available')

    def test_item_errors(self):
        r = self._create(items=[{'productId': 'unknown', 'quantity': 1}])
        self.assertEqual(r.status_code, 400)
        self.assertIn('name and price', r.json()['detail'])

        r2 = self._create(items=[{'productId': '1', 'quantity': 0}])
        self.assertEqual(r2.status_code, 400)
        self.assertEqual(r2.json()['detail'], 'All quantities are zero.')

        r3 = self._create(items=[{'productId': 'custom', 'name': 'Custom Charm', 'price': 120, 'quantity': 1}])
        self.assertEqual(r3.status_code, 201, r3.text)
        self.assertEqual(r3.json()['data']['total'], 120)

    def test_missing_customer_or_items(self):
        r = self.client.post('/api/orders', json={'items': [{'productId': '1', 'quantity': 1}]})
        self.assertEqual(r.status_code, 400)
        r2 = self.client.post('/api/orders', json={'customer': CUSTOMER, 'items': []})
        self.assertEqual(r2.status_code, 400)

    def test_duplicate_order_number(self):
        r = self._create(orderNumber='ord-001')
        self.assertEqual(r.status_code, 400)

    def test_invalid_payment_method(self):
        r = self._create(paymentMethod='barter')
        self.assertEqual(r.status_code, 400)

    def test_list_requires_admin(self):
        self.assertEqual(self.client.get('/api/orders').status_code, 401)
        r = self.client.get('/api/orders', headers=ADMIN)
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertEqual(data['count'], 2)
        # newest first
        self.assertEqual(data['data'][0]['orderNumber'], 'ORD-001')

        shipped = self.client.get('/api/orders', params={'status': 'shipped'}, headers=ADMIN).json()
        self.assertEqual([o['orderNumber'] for o in shipped['data']], ['ORD-002'])
        paid = self.client.get('/api/orders', params={'paymentStatus': 'paid'}, headers=ADMIN).json()
        self.assertEqual(paid['count'], 1)

    def test_get_by_id_or_number(self):
        for key in ('1', 'ORD-001', 'ord-001', '001'):
            r = self.client.get(f'/api/orders/{key}')
            self.assertEqual(r.status_code, 200, key)
            self.assertEqual(r.json()['data']['orderNumber'], 'ORD-001')
        self.assertEqual(self.client.get('/api/orders/ORD-999').status_code, 404)

    def test_status_updates(self):
        r = self.client.put('/api/orders', json={'id': '1', 'status': 'confirmed'}, headers=ADMIN)
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()['data']['status'], 'confirmed')

        r2 = self.client.put('/api/orders/ORD-002', json={'paymentStatus': 'refunded'}, headers=ADMIN)
        self.assertEqual(r2.status_code, 200, r2.text)
        self.assertEqual(r2.json()['data']['paymentStatus'], 'refunded')
        self.assertEqual(r2.json()['data']['status'], 'shipped')

        self.assertEqual(self.client.put('/api/orders', json={'id': '1', 'status': 'lost'}, headers=ADMIN).status_code, 400)
        self.assertEqual(self.client.put('/api/orders', json={'id': '1'}, headers=ADMIN).status_code, 400)
        self.assertEqual(self.client.put('/api/orders/nope', json={'status': 'shipped'}, headers=ADMIN).status_code, 404)
        self.assertEqual(self.client.put('/api/orders', json={'id': '1', 'status': 'shipped'}).status_code, 401)

    def test_status_change_visible_in_chat(self):
        self.client.put('/api/orders', json={'id': '1', 'status': 'delivered'}, headers=ADMIN)
        r = self.client.post('/api/chatbot', json={'message': 'status of ORD-001 please', 'conversationId': 'o'})
        self.assertIn('Status: delivered', r.json()['response'])


class TestShippingMethods(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(Config(admin_key='test-key')))

    def test_list_public(self):
        r = self.client.get('/api/shipping/methods')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['count'], 3)

    def test_crud(self):
        r = self.client.post('/api/shipping/methods', json={
            'name': 'Pickup', 'type': 'pickup', 'baseRate': 0, 'estimatedDays': 1,
        }, headers=ADMIN)
        self.assertEqual(r.status_code, 201, r.text)
        mid = r.json()['data']['id']

        r2 = self.client.put('/api/shipping/methods', json={'id': mid, 'baseRate': 50}, headers=ADMIN)
        self.assertEqual(r2.json()['data']['baseRate'], 50)

        bad = self.client.put('/api/shipping/methods', json={'id': mid, 'baseRate': -5}, headers=ADMIN)
        self.assertEqual(bad.status_code, 400)

        self.assertEqual(self.client.delete('/api/shipping/methods', params={'id': mid}, headers=ADMIN).status_code, 200)
        self.assertEqual(self.client.delete('/api/shipping/methods', params={'id': mid}, headers=ADMIN).status_code, 404)

    def test_create_requires_fields(self):
        r = self.client.post('/api/shipping/methods', json={'name': 'x'}, headers=ADMIN)
        self.assertEqual(r.status_code, 400)

class TestShippingZones(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(Config(admin_key='test-key')))

    def test_list_and_country_filter(self):
        r = self.client.get('/api/shipping/zones')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['count'], 2)
        uk = self.client.get('/api/shipping/zones', params={'country': 'united kingdom'}).json()['data']
        self.assertEqual([z['name'] for z in uk], ['International'])
        self.assertEqual(uk[0]['estimatedDays'], {'standard': 7, 'express': 3})
        self.assertEqual(self.client.get('/api/shipping/zones', params={'country': 'Mars'}).json()['count'], 0)

    def test_crud(self):
        r = self.client.post('/api/shipping/zones', json={
            'name': 'Gulf', 'countries': ['UAE', ' ', 'Qatar'], 'standardRate': 900, 'expressRate': 1800,
        }, headers=ADMIN)
        self.assertEqual(r.status_code, 201, r.text)
        zone = r.json()['data']
        self.assertEqual(zone['countries'], ['UAE', 'Qatar'])
        self.assertEqual(zone['regions'], ['All'])

        r2 = self.client.put('/api/shipping/zones', json={'id': zone['id'], 'isActive': False}, headers=ADMIN)
        self.assertFalse(r2.json()['data']['isActive'])
        # inactive zones are skipped when looking up a country
        self.assertEqual(self.client.get('/api/shipping/zones', params={'country': 'qatar'}).json()['count'], 0)

        bad = self.client.put('/api/shipping/zones', json={'id': zone['id'], 'countries': []}, headers=ADMIN)
        self.assertEqual(bad.status_code, 400)
        missing = self.client.put('/api/shipping/zones', json={'id': 'nope', 'standardRate': 1}, headers=ADMIN)
        self.assertEqual(missing.status_code, 404)

        self.assertEqual(self.client.delete('/api/shipping/zones', params={'id': zone['id']}, headers=ADMIN).status_code, 200)
        self.assertEqual(self.client.delete('/api/shipping/zones', params={'id': zone['id']}, headers=ADMIN).status_code, 404)
        self.assertEqual(self.client.delete('/api/shipping/zones', headers=ADMIN).status_code, 400)

    def test_create_validation(self):
        r = self.client.post('/api/shipping/zones', json={'name': 'x', 'countries': ['PK']}, headers=ADMIN)
        self.assertEqual(r.status_code, 400)
        neg = self.client.post('/api/shipping/zones', json={
            'name': 'x', 'countries': ['PK'], 'standardRate': -1, 'expressRate': 5,
        }, headers=ADMIN)
        self.assertEqual(neg.status_code, 400)
        anon = self.client.post('/api/shipping/zones', json={
            'name': 'x', 'countries': ['PK'], 'standardRate': 1, 'expressRate': 5,
        })
        self.assertEqual(anon.status_code, 401)

    def test_rate_for(self):
        zone = ShippingZone(name='Domestic', countries=['Pakistan'], freeShippingThreshold=5000,
                            standardRate=200, expressRate=500)
        self.assertEqual(zone.rate_for(1000), 200)
        self.assertEqual(zone.rate_for(1000, express=True), 500)
        self.assertEqual(zone.rate_for(5000, express=True), 0.0)
        self.assertTrue(zone.covers(' pakistan '))


if __name__ == '__main__':
    unittest.main()
