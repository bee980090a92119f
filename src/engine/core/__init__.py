"""
どこで: `engine.core` サブパッケージ。
何を: WKT 生成器の入力となる Geometry データモデル（種別・頂点タグ・座標列）を提供。
"""
