"""HTTP surface: auth, role gate, JSON errors, and the order, payment, catalog and review routes."""
import json
from unittest.mock import MagicMock, patch

import pytest
from django.conf import settings

from marketplace.exceptions import GatewayError
from marketplace.models import Food, OrderStatus, Payment, PaymentStatus, Review, Rider, RiderStatus
from tests.conftest import auth, checkout_data


def send(client, method, url, user=None, body=None):
    kwargs = auth(user) if user is not None else {}
    return getattr(client, method)(
        url, data=json.dumps(body or {}), content_type='application/json', **kwargs
    )


@pytest.mark.django_db
class TestAuth:

    def test_register_login_me_logout(self, client):
        resp = send(client, 'post', '/api/auth/register/', body={
            'name': 'Nadia', 'email': 'Nadia@Example.com', 'password': 'secret123',
        })
        assert resp.status_code == 201
        assert resp.json()['user']['role'] == 'customer'

        resp = send(client, 'post', '/api/auth/login/', body={
            'email': 'nadia@example.com', 'password': 'secret123',
        })
        assert resp.status_code == 200
        token = resp.json()['token']

        resp = client.get('/api/auth/me/', HTTP_AUTHORIZATION=f'Bearer {token}')
        assert resp.json()['email'] == 'nadia@example.com'

        client.post('/api/auth/logout/', HTTP_AUTHORIZATION=f'Bearer {token}')
        resp = client.get('/api/auth/me/', HTTP_AUTHORIZATION=f'Bearer {token}')
        assert resp.status_code == 401

    def test_duplicate_register(self, client, customer_user):
        resp = send(client, 'post', '/api/auth/register/', body={
            'email': customer_user.email, 'password': 'secret123',
        })
        assert resp.status_code == 409

    def test_bad_password(self, client, customer_user):
        resp = send(client, 'post', '/api/auth/login/', body={
            'email': customer_user.email, 'password': 'wrong',
        })
        assert resp.status_code == 401

    def test_missing_token(self, client, db):
        assert client.get('/api/orders/').status_code == 401
        resp = client.get('/api/orders/', HTTP_AUTHORIZATION='Bearer nope')
        assert resp.status_code == 401


@pytest.mark.django_db
class TestOrderRoutes:

    def test_place_and_fetch(self, client, customer_user, foods):
        resp = send(client, 'post', '/api/orders/', customer_user, checkout_data(customer_user.email, foods))
        assert resp.status_code == 201
        data = resp.json()
        assert data['status'] == 'not_assigned'
        assert len(data['items']) == 2
        resp = client.get(f"/api/orders/{data['id']}/", **auth(customer_user))
        assert resp.status_code == 200
        assert resp.json()['customer']['address']['thana'] == 'Mirpur'

    def test_empty_items_is_400(self, client, customer_user, foods):
        body = checkout_data(customer_user.email, foods)
        body['items'] = []
        resp = send(client, 'post', '/api/orders/', customer_user, body)
        assert resp.status_code == 400
        assert resp.json()['error']

    def test_malformed_json_is_400(self, client, customer_user):
        resp = client.post(
            '/api/orders/', data='{not json', content_type='application/json', **auth(customer_user)
        )
        assert resp.status_code == 400
        assert resp.json() == {'error': 'Invalid JSON'}

    def test_list_scoped_to_caller(self, client, order, other_customer_user, admin_user):
        resp = client.get('/api/orders/', **auth(other_customer_user))
        assert resp.json()['total'] == 0
        resp = client.get('/api/orders/?status=not_assigned', **auth(admin_user))
        assert resp.json()['total'] == 1

    def test_detail_forbidden_for_other_customer(self, client, order, other_customer_user):
        resp = client.get(f'/api/orders/{order.id}/', **auth(other_customer_user))
        assert resp.status_code == 403

    def test_assign_requires_admin_role(self, client, order, rider, customer_user):
        resp = send(client, 'patch', f'/api/orders/{order.id}/assign/', customer_user, {'rider_id': rider.id})
        assert resp.status_code == 403
        assert resp.json() == {'error': 'Admin access required'}

    def test_delivery_flow_over_http(self, client, order, rider, admin_user, rider_user):
        resp = send(client, 'patch', f'/api/orders/{order.id}/assign/', admin_user, {'rider_id': rider.id})
        assert resp.status_code == 200
        assert resp.json()['assigned_rider_name'] == 'Jamal'
        resp = send(client, 'patch', f'/api/orders/{order.id}/status/', rider_user, {'status': 'picked'})
        assert resp.json()['status'] == 'picked'
        resp = send(client, 'patch', f'/api/orders/{order.id}/status/', rider_user, {'status': 'picked'})
        assert resp.status_code == 409
        resp = send(client, 'patch', f'/api/orders/{order.id}/status/', rider_user, {'status': 'delivered'})
        assert resp.json()['status'] == 'delivered'
        resp = send(client, 'patch', f'/api/orders/{order.id}/cashout/', rider_user)
        assert resp.json()['cashout_status'] == 'cashed_out'
        resp = send(client, 'patch', f'/api/orders/{order.id}/cashout/', rider_user)
        assert resp.status_code == 409
        assert Rider.objects.get(pk=rider.id).work_status == 'available'

    def test_cancel_via_patch(self, client, order, customer_user):
        resp = send(client, 'patch', f'/api/orders/{order.id}/', customer_user, {'status': 'cancelled'})
        assert resp.status_code == 200
        assert resp.json()['status'] == OrderStatus.CANCELLED
        resp = send(client, 'patch', f'/api/orders/{order.id}/', customer_user, {'status': 'delivered'})
        assert resp.status_code == 400

    def test_unknown_order_is_404(self, client, admin_user):
        assert client.get('/api/orders/9999/', **auth(admin_user)).status_code == 404

    def test_receipt_after_payment(self, client, order, customer_user, customer):
        assert client.get(f'/api/orders/{order.id}/receipt/', **auth(customer_user)).status_code == 400
        send(client, 'post', '/api/payments/', customer_user, {
            'order_id': order.id, 'email': customer.email, 'amount': '500',
            'method': 'card', 'transaction_id': 'pi_1',
        })
        resp = client.get(f'/api/orders/{order.id}/receipt/', **auth(customer_user))
        assert resp.status_code == 200
        assert resp['Content-Type'] == 'application/pdf'
        assert resp.content.startswith(b'%PDF')


@pytest.mark.django_db
class TestPaymentRoutes:

    def test_ssl_session_and_success_callback(self, client, order, customer_user):
        gateway = MagicMock()
        gateway.create_session.return_value = 'https://sandbox.sslcommerz.com/pay/1'
        gateway.validate.return_value = 'VALID'
        with patch('marketplace.payments.get_gateway', return_value=gateway):
            resp = send(client, 'post', '/api/payments/create-ssl-payment/', customer_user, {'order_id': order.id})
            assert resp.json() == {'url': 'https://sandbox.sslcommerz.com/pay/1'}
            tran_id = Payment.objects.get(order=order).transaction_id
            resp = client.post('/api/payments/success-payment/', {'tran_id': tran_id, 'val_id': 'v1'})
        assert resp.status_code == 302
        assert resp['Location'] == settings.ORDER_TRACKING_URL
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID

    def test_gateway_error_surfaces_as_500(self, client, order, customer_user):
        gateway = MagicMock()
        gateway.create_session.side_effect = GatewayError('SSLCommerz session failed: bad store')
        with patch('marketplace.payments.get_gateway', return_value=gateway):
            resp = send(client, 'post', '/api/payments/create-ssl-payment/', customer_user, {'order_id': order.id})
        assert resp.status_code == 500
        assert resp.json() == {'error': 'SSLCommerz session failed: bad store'}

    def test_fail_callback_redirects_and_removes_pending(self, client, order, customer_user):
        gateway = MagicMock()
        gateway.create_session.return_value = 'https://sandbox.sslcommerz.com/pay/1'
        with patch('marketplace.payments.get_gateway', return_value=gateway):
            send(client, 'post', '/api/payments/create-ssl-payment/', customer_user, {'order_id': order.id})
        tran_id = Payment.objects.get(order=order).transaction_id
        resp = client.post('/api/payments/fail-payment/', {'tran_id': tran_id})
        assert resp.status_code == 302
        assert not Payment.objects.filter(order=order).exists()

    def test_unknown_transaction_still_redirects(self, client, db):
        resp = client.post('/api/payments/success-payment/', {'tran_id': 'nope', 'val_id': 'v'})
        assert resp.status_code == 302

    def test_double_payment_conflict(self, client, order, customer_user, customer):
        body = {'order_id': order.id, 'email': customer.email, 'amount': '500', 'method': 'card'}
        resp = send(client, 'post', '/api/payments/', customer_user, dict(body, transaction_id='pi_1'))
        assert resp.status_code == 201
        resp = send(client, 'post', '/api/payments/', customer_user, dict(body, transaction_id='pi_2'))
        assert resp.status_code == 409

    def test_payment_intent(self, client, customer_user):
        processor = MagicMock()
        processor.create_intent.return_value = 'pi_1_secret'
        with patch('marketplace.payments.get_card_processor', return_value=processor):
            resp = send(client, 'post', '/api/payments/create-payment-intent/', customer_user, {'amount_in_cents': 50000})
        assert resp.json() == {'client_secret': 'pi_1_secret'}


@pytest.mark.django_db
class TestRiderAndInboxRoutes:

    def test_apply_and_approve(self, client, customer_user, admin_user):
        resp = send(client, 'post', '/api/riders/', customer_user, {'name': 'Rahim', 'phone': '0170'})
        assert resp.status_code == 201
        rider_id = resp.json()['id']
        resp = client.get('/api/riders/pending/', **auth(admin_user))
        assert [r['id'] for r in resp.json()['riders']] == [rider_id]
        resp = send(client, 'patch', f'/api/riders/{rider_id}/status/', admin_user, {'status': 'active'})
        assert resp.json()['status'] == RiderStatus.ACTIVE
        resp = client.get('/api/riders/available/?thana=', **auth(admin_user))
        assert rider_id in [r['id'] for r in resp.json()['riders']]

    def test_rider_queues(self, client, picked_order, rider_user):
        resp = client.get('/api/riders/orders/', **auth(rider_user))
        assert [o['id'] for o in resp.json()['orders']] == [picked_order.id]
        resp = client.get('/api/riders/completed-orders/', **auth(rider_user))
        assert resp.json()['orders'] == []

    def test_inbox_and_read_all(self, client, order, customer_user, admin_user, foods):
        send(client, 'post', '/api/foods/', admin_user, {'name': 'Fuchka', 'price': '80'})
        resp = client.get('/api/notifications/', **auth(customer_user))
        data = resp.json()
        assert data['total'] == 2
        assert data['unread'] == 2
        resp = send(client, 'patch', '/api/notifications/read-all/', customer_user)
        assert resp.json() == {'direct_updated': 1, 'broadcast_updated': 1}
        assert client.get('/api/notifications/', **auth(customer_user)).json()['unread'] == 0

    def test_food_list_is_public(self, client, foods):
        resp = client.get('/api/foods/?search=biryani')
        assert [f['name'] for f in resp.json()['foods']] == ['Kacchi Biryani']

    def test_stats_routes(self, client, delivered_order, customer_user, rider_user, admin_user):
        assert client.get('/api/stats/customer/', **auth(customer_user)).json()['completed_orders'] == 1
        assert client.get('/api/stats/rider/', **auth(rider_user)).json()['pending_cashout'] == '50'
        assert client.get('/api/stats/admin/', **auth(admin_user)).json()['total_orders'] == 1
        assert client.get('/api/stats/admin/', **auth(customer_user)).status_code == 403


@pytest.mark.django_db
class TestReviewAndFoodRoutes:

    def test_post_and_list_reviews_newest_first(self, client, customer_user, foods):
        food_id = foods[0].id
        for rating, comment in ((4, 'Good rice'), (5, 'Best kacchi in town')):
            resp = send(client, 'post', '/api/reviews/', customer_user, {
                'food_id': food_id, 'rating': rating, 'comment': comment,
            })
            assert resp.status_code == 201
            assert resp.json()['user_name'] == 'Rahim'
        send(client, 'post', '/api/reviews/', customer_user, {
            'food_id': foods[1].id, 'rating': 3, 'comment': 'Other dish',
        })

        resp = client.get(f'/api/reviews/?food_id={food_id}&limit=1')
        data = resp.json()
        assert data['total'] == 2
        assert [r['comment'] for r in data['reviews']] == ['Best kacchi in town']
        resp = client.get(f'/api/reviews/?food_id={food_id}&page=2&limit=1')
        assert [r['rating'] for r in resp.json()['reviews']] == [4]

    def test_review_list_needs_food_id(self, client, db):
        assert client.get('/api/reviews/').status_code == 400

    def test_posting_a_review_needs_a_token(self, client, foods):
        resp = send(client, 'post', '/api/reviews/', body={
            'food_id': foods[0].id, 'rating': 5, 'comment': 'Nice',
        })
        assert resp.status_code == 401

    @pytest.mark.parametrize('missing, extra', [
        ('food_id', {}),
        ('rating', {}),
        ('comment', {}),
        (None, {'rating': 9}),
        (None, {'rating': 'five'}),
    ])
    def test_invalid_review_is_400(self, client, customer_user, foods, missing, extra):
        body = dict({'food_id': foods[0].id, 'rating': 5, 'comment': 'Nice'}, **extra)
        body.pop(missing, None)
        resp = send(client, 'post', '/api/reviews/', customer_user, body)
        assert resp.status_code == 400
        assert Review.objects.count() == 0

    def test_review_for_unknown_food_is_404(self, client, customer_user, db):
        resp = send(client, 'post', '/api/reviews/', customer_user, {
            'food_id': 9999, 'rating': 5, 'comment': 'Nice',
        })
        assert resp.status_code == 404

    def test_admin_deletes_unordered_food(self, client, admin_user, customer_user, foods):
        send(client, 'post', '/api/reviews/', customer_user, {
            'food_id': foods[0].id, 'rating': 5, 'comment': 'Nice',
        })
        assert send(client, 'delete', f'/api/foods/{foods[0].id}/', customer_user).status_code == 403
        resp = send(client, 'delete', f'/api/foods/{foods[0].id}/', admin_user)
        assert resp.status_code == 200
        assert not Food.objects.filter(pk=foods[0].id).exists()
        assert Review.objects.count() == 0
        assert send(client, 'delete', f'/api/foods/{foods[0].id}/', admin_user).status_code == 404

    def test_ordered_food_cannot_be_deleted(self, client, admin_user, order, foods):
        resp = send(client, 'delete', f'/api/foods/{foods[0].id}/', admin_user)
        assert resp.status_code == 409
        assert Food.objects.filter(pk=foods[0].id).exists()
