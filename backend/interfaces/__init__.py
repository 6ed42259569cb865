"""層間インターフェース定義。

各層はこのパッケージのモデルと抽象クラスにのみ依存する。
backend/store/ や backend/sync/gas_client.py の実装に直接依存してはならない。
"""
