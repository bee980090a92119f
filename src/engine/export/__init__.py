"""
どこで: `engine.export` サブパッケージ。
何を: Geometry をテキスト形式（WKT）へ書き出す生成器と Writer を提供。
"""
