from locust import HttpUser, task, between
import random
import uuid

class ShopperUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Register and log in a shopper for this simulated client
        email = f"shopper_{uuid.uuid4().hex[:12]}@example.com"
        self.client.post("/register", json={"username": email.split("@")[0], "email": email, "password": "loadtest", "address": "1 Load St"})
        r = self.client.post("/login", json={"email": email, "password": "loadtest"})
        if r.status_code == 200:
            self.headers = {"Authorization": f"Bearer {r.json()['token']}"}
        else:
            self.headers = None

    @task(3)
    def place_order(self):
        if not self.headers:
            return
        quantity = random.randint(1, 5)
        self.client.post(
            "/orders",
            json={
                "orderId": uuid.uuid4().hex,
                "name": "Load Tester",
                "address": "1 Load St",
                "contact": "555-0100",
                "items": [{"productId": "p1", "quantity": quantity}],
                "grandTotal": round(random.random() * 100, 2),
            },
            headers=self.headers,
        )

    @task(2)
    def browse_products(self):
        self.client.get("/products")

    @task(1)
    def my_orders(self):
        if not self.headers:
            return
        self.client.get("/orders/user", headers=self.headers)
