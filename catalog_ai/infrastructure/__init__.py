"""
インフラストラクチャ層
リトライとメトリクス
"""
