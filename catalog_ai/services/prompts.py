"""
プロンプト定義
各ハンドラーがAIプロバイダーへ送るプロンプトと生成パラメータ
"""
from catalog_ai.services.providers.base import GenerationOptions

SEO_OPTIONS = GenerationOptions(temperature=0.2, max_tokens=4096)
FORMAT_OPTIONS = GenerationOptions(temperature=0.1, max_tokens=65536)
MATCH_OPTIONS = GenerationOptions(temperature=0.1, max_tokens=2000)


def build_seo_prompt(product_name: str) -> str:
    """SEOタイトル・スペック生成プロンプト"""
    return f"""Product: "{product_name}"

Create an SEO title and DETAILED technical specifications.

SEO Title: Include brand, model, CPU gen, RAM, storage, display size, and OS (e.g., "Dell Optiplex 7020 SFF: Intel Core i5 14th Gen, 8GB DDR4, 512GB NVMe SSD, 20" E2020H Monitor, Windows 11 Pro")

Specs: Use ✅ bullets with DETAILED info for each:
✅ Processor: Full model name, generation, cores, threads, speed, cache
✅ RAM: Size, type, speed, slots, max expandable
✅ Storage: Size, type (PCIe NVMe/SATA)
✅ Graphics: Model name
✅ Ports: List all USB, video, audio ports with specs
✅ Bundled Monitor: Size, resolution, panel type, refresh rate (if included)
✅ OS: Operating system
✅ Warranty: Duration

Respond with valid JSON only (no markdown):
{{"seoTitle": "Brand Model: specs", "specs": "✅ Processor: details\\n✅ RAM: details\\n...", "confident": true/false}}"""


def build_format_prompt(raw_text: str) -> str:
    """価格表整形プロンプト"""
    return f"""Convert this price list to a clean format. Include ALL items.

FORMAT:
- First line: month/year (e.g., FEB 2026)
- Category headers in ALL CAPS on own line
- Product name on one line (combine multi-line descriptions, include SKU codes)
- Price on next line as @NUMBER+
- Remove asterisks, line numbers, bullets

Example output:
FEB 2026
DESKTOPS

HP PRO TOWER 290 G9 CI3 14100 8GB 512GB 21.5" #C6QM6AT
@460+

Dell Optiplex 7020 Ci5 14th gen 8GB 512GB 20" E2020H
@580+

DATA TO FORMAT:
{raw_text}

Output ONLY the formatted list. Include ALL products."""


def build_match_prompt(existing_summary: str, new_summary: str) -> str:
    """商品マッチングプロンプト（各行は ID|Name|Price 形式）"""
    return f"""Match products by name similarity. Format: ID|Name|Price

EXISTING:
{existing_summary}

NEW:
{new_summary}

Return JSON with matches (existing ID to new index), new product indices, and missing IDs:
{{"matches":[{{"existingId":"id","newIndex":0,"confidence":0.9}}],"newProducts":[1,3],"missingIds":["id2"]}}"""
