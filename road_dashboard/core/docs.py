"""
@file docs.py
@brief Landing page served at the application root
@details
Static HTML listing the dashboard endpoints. No version numbers or
deployment details are exposed.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

## @brief (method, path, description) rows of the endpoint table
ENDPOINTS = [
    ("GET", "/api/roads", "Road segments (fac_type, surf_type, district_no, urban_rural, min/max_condition, limit, offset)"),
    ("GET", "/api/roads/bounds", "Segments inside a lat/lng box"),
    ("GET", "/api/roads/search", "Segments by street name or route number"),
    ("GET", "/api/osm-roads", "OpenStreetMap roads (highway, state, limit, offset)"),
    ("GET", "/api/osm-roads/near", "OpenStreetMap roads near a point"),
    ("GET", "/api/statistics", "Network totals and breakdowns"),
    ("GET", "/api/statistics/facility", "Per facility type aggregates"),
    ("GET", "/api/osm-statistics", "Per highway type aggregates"),
    ("GET", "/api/heatmap", "Heat-map points (type=condition|traffic|age, data_source=csv|osm)"),
    ("GET", "/api/features", "Styled roads as a GeoJSON FeatureCollection"),
    ("GET", "/api/geocode", "Place-name search"),
    ("POST", "/api/upload", "Replace the road segment dataset with an uploaded CSV (field: csv)"),
    ("GET", "/map", "Rendered road map with optional heat layer"),
    ("GET", "/health", "Service health"),
]


def get_root_documentation() -> str:
    """
    @brief Generate the HTML content for the root documentation page
    @return HTML string
    """
    rows = "\n".join(
        f"<tr><td><code>{method}</code></td><td><code>{path}</code></td><td>{description}</td></tr>"
        for method, path, description in ENDPOINTS
    )
    return f"""<!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>Road Classification Dashboard API</title>
        <style>
            body {{
                font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                line-height: 1.6;
                color: #333;
                background: #f4f6f8;
                padding: 20px;
            }}
            .container {{
                max-width: 960px;
                margin: 0 auto;
                background: white;
                border-radius: 8px;
                box-shadow: 0 4px 20px rgba(0, 0, 0, 0.1);
                padding: 32px;
            }}
            h1 {{ color: #0066cc; }}
            table {{ width: 100%; border-collapse: collapse; margin-top: 20px; }}
            td {{ border-bottom: 1px solid #eee; padding: 8px; vertical-align: top; }}
            .legend span {{ display: inline-block; width: 14px; height: 14px; margin-right: 6px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1>Road Classification Dashboard</h1>
            <p>State road segments and OpenStreetMap roads stored in PostGIS, with
            filtering, statistics, heat maps and a rendered map at <a href="/map">/map</a>.</p>

            <h2>Endpoints</h2>
            <table>
            {rows}
            </table>

            <h2>Map colors</h2>
            <p class="legend">
                <span style="background:#0066cc"></span>Interstate / motorway
                <span style="background:#00aa00"></span>US route / trunk
                <span style="background:#ffaa00"></span>State route / primary
                <span style="background:#9966cc"></span>County route / secondary
                <span style="background:#ff6666"></span>Local road / tertiary
            </p>
        </div>
    </body>
    </html>
    """
