"""
API Smoke and Timing Check

Logs in to a running backend, calls every list/stats/report GET endpoint,
measures the response time of each and prints a summary report.

Usage:
    CHECK_API_URL=http://127.0.0.1:8000/api CHECK_API_USERNAME=admin python scripts/check_api.py
"""
import getpass
import json
import os
import sys
import time
from datetime import datetime
from typing import Dict, List, Optional

import requests

BASE_URL = os.getenv('CHECK_API_URL', 'http://127.0.0.1:8000/api').rstrip('/')
USERNAME = os.getenv('CHECK_API_USERNAME', '')
PASSWORD = os.getenv('CHECK_API_PASSWORD', '')
TIMEOUT = 30

# (category, name, endpoint, params)
ENDPOINTS = [
    ('Auth', 'Current user', '/auth/me/', None),
    ('Customers', 'List', '/customers/', {'page': 1, 'page_size': 50}),
    ('Customers', 'Active only', '/customers/', {'status': 'active'}),
    ('Customers', 'Stats', '/customers/stats/', None),
    ('Suppliers', 'List', '/suppliers/', None),
    ('Suppliers', 'Stats', '/suppliers/stats/', None),
    ('Raw Materials', 'List', '/raw-materials/', {'page': 1, 'page_size': 50}),
    ('Raw Materials', 'Low stock', '/raw-materials/', {'status': 'low-stock'}),
    ('Raw Materials', 'Stats', '/raw-materials/stats/', None),
    ('Products', 'List', '/products/', {'page': 1, 'page_size': 50}),
    ('Products', 'Search', '/products/', {'search': 'carpet'}),
    ('Products', 'Stats', '/products/stats/', None),
    ('Individual Products', 'List', '/individual-products/', {'status': 'available'}),
    ('Individual Products', 'Stats', '/individual-products/stats/', None),
    ('Recipes', 'List', '/recipes/', None),
    ('Orders', 'List', '/orders/', {'page': 1, 'page_size': 50}),
    ('Orders', 'Open orders', '/orders/', {'status': 'pending,accepted,in_production,ready'}),
    ('Orders', 'Stats', '/orders/stats/', None),
    ('Production', 'Batches', '/production/batches/', None),
    ('Production', 'Machines', '/production/machines/', None),
    ('Production', 'Waste', '/production/waste/', None),
    ('Production', 'Stats', '/production/stats/', None),
    ('Purchase Orders', 'List', '/purchase-orders/', None),
    ('Purchase Orders', 'Stats', '/purchase-orders/stats/', None),
    ('Dropdowns', 'Grouped', '/dropdowns/grouped/', None),
    ('Dropdowns', 'Product bundle', '/dropdowns/products/', None),
    ('Notifications', 'List', '/notifications/', {'limit': 50}),
    ('Notifications', 'Unread count', '/notifications/unread-count/', None),
    ('Activity', 'Logs', '/activity-logs/', None),
    ('Reports', 'Dashboard', '/reports/dashboard/', None),
    ('Reports', 'Sales', '/reports/sales/', None),
    ('Reports', 'Inventory', '/reports/inventory/', None),
    ('Reports', 'Production', '/reports/production/', None),
]


class APITester:
    """Calls endpoints with an authenticated session and records timings"""

    def __init__(self, base_url: str):
        self.base_url = base_url
        self.results: List[Dict] = []
        self.session = requests.Session()

    def authenticate(self, username: str, password: str) -> bool:
        print(f"🔐 Authenticating as {username}...")
        try:
            response = self.session.post(
                f"{self.base_url}/auth/login/",
                json={"username": username, "password": password},
                timeout=10,
            )
        except requests.exceptions.RequestException as e:
            print(f"❌ Authentication error: {str(e)}")
            return False

        if response.status_code != 200:
            print(f"❌ Authentication failed: {response.status_code}")
            print(f"Response: {response.text[:500]}")
            return False

        self.session.headers.update({'Authorization': f"Bearer {response.json()['access']}"})
        print("✅ Authentication successful!")
        return True

    def test_endpoint(self, category: str, name: str, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """Call one endpoint and record status, timing and item count"""
        url = f"{self.base_url}{endpoint}"
        result = {
            'category': category,
            'name': name,
            'endpoint': endpoint,
            'params': params or {},
            'timestamp': datetime.now().isoformat(),
        }

        start_time = time.perf_counter()
        try:
            response = self.session.get(url, params=params, timeout=TIMEOUT)
        except requests.exceptions.Timeout:
            result.update(status_code=0, response_time_ms=TIMEOUT * 1000, success=False,
                          error=f'Request timeout ({TIMEOUT}s)')
            self.results.append(result)
            return result
        except requests.exceptions.RequestException as e:
            result.update(status_code=0, response_time_ms=0, success=False, error=str(e))
            self.results.append(result)
            return result

        result['response_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
        result['status_code'] = response.status_code
        result['success'] = response.status_code == 200

        try:
            data = response.json()
        except ValueError:
            data = None
            result['response_text'] = response.text[:200]

        # list envelopes: {results, count} for paginated lists, {data, total} for notifications
        if isinstance(data, list):
            result['item_count'] = len(data)
        elif isinstance(data, dict):
            if 'results' in data:
                result['item_count'] = len(data['results'])
                result['total_count'] = data.get('count', 0)
            elif 'data' in data:
                result['item_count'] = len(data['data'])
                result['total_count'] = data.get('total', 0)

        if not result['success']:
            result['error'] = response.text[:500]
        self.results.append(result)
        return result

    def print_result(self, result: Dict):
        status_icon = "✅" if result['success'] else "❌"
        print(f"{status_icon} {result['category']} - {result['name']}")
        print(f"   Endpoint: {result['endpoint']}")
        print(f"   Status: {result['status_code']}  Response Time: {result['response_time_ms']}ms")
        if result.get('total_count') is not None:
            print(f"   Items: {result['item_count']} of {result['total_count']}")
        elif result.get('item_count') is not None:
            print(f"   Items: {result['item_count']}")
        if not result['success'] and result.get('error'):
            print(f"   Error: {result['error'][:200]}")

    def generate_report(self):
        total_tests = len(self.results)
        successful = [r for r in self.results if r['success']]
        failed = [r for r in self.results if not r['success']]
        avg_response_time = (sum(r['response_time_ms'] for r in successful) / len(successful)) if successful else 0

        print("\n" + "=" * 80)
        print("📊 API CHECK REPORT")
        print("=" * 80)
        print(f"Base URL: {self.base_url}")
        print(f"Test Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"\nTotal Tests: {total_tests}")
        print(f"Successful: {len(successful)} ✅")
        print(f"Failed: {len(failed)} ❌")
        if total_tests:
            print(f"Success Rate: {(len(successful) / total_tests * 100):.1f}%")
        print(f"\nAverage Response Time: {avg_response_time:.2f}ms")
        if successful:
            slowest = max(successful, key=lambda r: r['response_time_ms'])
            print(f"Slowest: {slowest['category']} - {slowest['name']} ({slowest['response_time_ms']}ms)")

        print("\n" + "-" * 80)
        print("📋 RESULTS BY CATEGORY")
        print("-" * 80)
        categories = {}
        for result in self.results:
            categories.setdefault(result['category'], []).append(result)
        for category, results in categories.items():
            ok = [r for r in results if r['success']]
            avg_time = sum(r['response_time_ms'] for r in ok) / len(ok) if ok else 0
            print(f"\n{category}: {len(ok)}/{len(results)} successful, avg {avg_time:.2f}ms")
            for result in sorted(results, key=lambda r: r['response_time_ms'], reverse=True):
                status_icon = "✅" if result['success'] else "❌"
                print(f"  {status_icon} {result['endpoint']}: {result['response_time_ms']}ms")

        if failed:
            print("\n" + "-" * 80)
            print("❌ FAILED TESTS")
            print("-" * 80)
            for result in failed:
                print(f"\n{result['category']} - {result['name']}")
                print(f"  Endpoint: {result['endpoint']}")
                print(f"  Error: {result.get('error', 'Unknown error')[:200]}")
        print("\n" + "=" * 80)

    def save_results(self, filename: str):
        with open(filename, 'w') as f:
            json.dump({
                'test_date': datetime.now().isoformat(),
                'base_url': self.base_url,
                'total_tests': len(self.results),
                'successful_tests': sum(1 for r in self.results if r['success']),
                'results': self.results,
            }, f, indent=2)
        print(f"\n💾 Results saved to {filename}")


def main():
    print("=" * 80)
    print("🧪 API CHECK")
    print("=" * 80)
    print(f"Target: {BASE_URL}\n")

    username = USERNAME or input("Enter username: ")
    password = PASSWORD or getpass.getpass("Enter password: ")

    tester = APITester(BASE_URL)
    if not tester.authenticate(username, password):
        print("❌ Authentication failed. Cannot proceed with checks.")
        sys.exit(1)

    print("\n🚀 Calling endpoints...\n")
    for category, name, endpoint, params in ENDPOINTS:
        tester.print_result(tester.test_endpoint(category, name, endpoint, params))

    tester.generate_report()
    output = os.getenv('CHECK_API_OUTPUT')
    if output:
        tester.save_results(output)

    if any(not result['success'] for result in tester.results):
        sys.exit(1)


if __name__ == '__main__':
    main()
