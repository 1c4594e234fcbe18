import hashlib
import random

import pandas as pd

random.seed(42)

transactions = []
tx_id = 1
block = 19_000_000

ENTITY_TYPES = ["wallet", "wallet", "wallet", "exchange", "contract"]


def addr(label):
    # stable fake address derived from a readable label
    return "0x" + hashlib.sha256(label.encode("utf-8")).hexdigest()[:40]


def add_tx(sender, receiver, value_eth, age_seconds, fee=0.00042,
           sender_type="wallet", receiver_type="wallet"):
    global tx_id, block
    transactions.append({
        "Record": tx_id,
        "TxHash": f"0x{tx_id:064x}",
        "Block": block,
        "From": addr(sender),
        "To": addr(receiver),
        "Value_ETH": round(value_eth, 6),
        "TxFee": fee,
        "Age_seconds": int(age_seconds),
        "From_is_address": 1,
        "To_is_address": 1,
        "From_entity_type": sender_type,
        "To_entity_type": receiver_type,
        "Fee_to_Value": round(fee / value_eth, 6) if value_eth else 0,
        "Value_Wei": str(int(value_eth * 10 ** 18)),
        "From_tx_count": random.randint(1, 400),
        "To_tx_count": random.randint(1, 400),
    })
    tx_id += 1
    block += random.randint(0, 2)


# 1. Classic smurfing
# One wallet splits a large balance into many near-identical transfers every ~12s
for i in range(15):
    add_tx("SMURF_SOURCE", f"SMURF_MULE_{i}", 0.095 + random.uniform(-0.002, 0.002), 7200 - i * 12)

# 2. Fan-in aggregation
# Mules forward their slices to one collector over the next hour
for i in range(15):
    add_tx(f"SMURF_MULE_{i}", "SMURF_COLLECTOR", 0.09, 6000 - i * 240)
add_tx("SMURF_COLLECTOR", "CASHOUT_EXCHANGE", 1.3, 2400, receiver_type="exchange")

# 3. Peeling chain
# Each hop peels a small amount off and passes the rest on
balance = 25.0
for i in range(8):
    peel = balance * random.uniform(0.03, 0.08)
    add_tx(f"PEEL_{i}", f"PEEL_OUT_{i}", peel, 50000 - i * 900)
    balance -= peel
    add_tx(f"PEEL_{i}", f"PEEL_{i + 1}", balance, 50000 - i * 900 - 30)

# 4. Rapid layering
# Funds hop through a chain of fresh wallets a few seconds apart
for i in range(10):
    add_tx(f"LAYER_{i}", f"LAYER_{i + 1}", 4.0 - i * 0.01, 3000 - i * 3, fee=0.0009)

# 5. Dust with high fees
for i in range(6):
    add_tx("DUST_BOT", f"DUST_TARGET_{i}", 0.002, 9000 - i * 45, fee=0.0004)

# 6. Safe exchange withdrawals (many outputs, irregular timing, varied amounts)
for i in range(20):
    add_tx("BIG_EXCHANGE", f"CUSTOMER_{i}", random.uniform(0.05, 12), random.uniform(0, 86400 * 3),
           sender_type="exchange")

# 7. Random safe noise
for i in range(150):
    add_tx(f"RANDOM_{random.randint(1, 60)}", f"RANDOM_{random.randint(61, 120)}",
           random.uniform(0.01, 3), random.uniform(0, 86400 * 7),
           sender_type=random.choice(ENTITY_TYPES), receiver_type=random.choice(ENTITY_TYPES))

df = pd.DataFrame(transactions)
df.to_csv("test_ledger.csv", index=False)
print("Created test_ledger.csv with", len(df), "transactions.")
