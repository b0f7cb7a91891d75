from sqlalchemy import BigInteger, Integer

# BigInteger surrogate keys; SQLite only autoincrements INTEGER PRIMARY KEY.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
