RESUME_PROMPT = """
                You are an expert in ATS (Applicant Tracking Systems) and professional resume analysis.
                Please analyze and rate this resume and suggest how to improve it.
                The rating can be low if the resume is bad. Be thorough and detailed, and don't be
                afraid to point out mistakes or areas for improvement.

                1. **Score and Evaluate:** Rate each category from **0 to 100** as a whole number,
                and give an 'overallScore' from 0 to 100.
                2. **Job Relevance Check:** Use the 'Job Description' to judge keyword and
                requirement alignment for the 'ATS' category.
                3. **Provide Actionable Tips:** Give 3-4 tips per category. Use 'good' for strengths
                and 'improve' for weaknesses. 'tip' is a short title, 'explanation' explains it in detail.

                Job Title: ${jobTitle}
                Job Description: ${jobDescription}

                Return **only** a JSON object that strictly matches this schema:
                ${AIResponseFormat}
                No extra text, no Markdown, no backticks—just valid JSON.
                """

json_structure = """
                {
                "overallScore": 0,
                "ATS": {
                    "score": 0,
                    "tips": [
                        { "type": "good", "tip": "Keyword-rich formatting" },
                        { "type": "improve", "tip": "Optimize for ATS parsing" }
                    ]
                },
                "toneAndStyle": {
                    "score": 0,
                    "tips": [
                        {
                            "type": "good",
                            "tip": "Professional yet approachable",
                            "explanation": "The tone balances formal and friendly language, suitable for most professional roles."
                        }
                    ]
                },
                "content": {
                    "score": 0,
                    "tips": [
                        {
                            "type": "improve",
                            "tip": "Add measurable achievements with metrics",
                            "explanation": "Include concrete metrics (e.g., revenue growth, user numbers) to strengthen impact."
                        }
                    ]
                },
                "structure": {
                    "score": 0,
                    "tips": [
                        {
                            "type": "improve",
                            "tip": "Reorder sections",
                            "explanation": "Place the most relevant experience at the top to capture attention quickly."
                        }
                    ]
                },
                "skills": {
                    "score": 0,
                    "tips": [
                        {
                            "type": "good",
                            "tip": "Relevant technical skills",
                            "explanation": "Your listed skills match the target roles and are easy to read."
                        }
                    ]
                }
            }
            """

OPTIMIZE_PROMPT = """
                You are an expert ATS optimization specialist. Rewrite the resume below so it scores
                as high as possible on ATS systems for this job, without inventing experience.

                Position: ${jobTitle}
                Company: ${companyName}
                Job Description: ${jobDescription}
                ${currentFeedback}

                Requirements:
                - Mirror important keywords and exact phrases from the job description.
                - Use only these section headers, in UPPERCASE: PROFESSIONAL SUMMARY, PROFESSIONAL EXPERIENCE,
                  EDUCATION, TECHNICAL SKILLS, PROJECTS, ACHIEVEMENTS.
                - Every bullet starts with the • character and follows Action Verb + Task + Result,
                  with numbers wherever the original supports them.
                - Preserve every URL exactly as written in the original resume.
                - One column, no tables, no graphics.

                Output layout:
                # [CANDIDATE NAME IN UPPERCASE]
                [City, State | Phone | Email | LinkedIn URL | GitHub URL]

                PROFESSIONAL SUMMARY
                [3-4 keyword-rich lines]

                PROFESSIONAL EXPERIENCE
                **[Job Title]** | [Company, Location] | [Month Year - Month Year]
                • [bullet]

                EDUCATION
                **[Degree]** | [Institution] | [Year - Year]

                TECHNICAL SKILLS
                • [Category]: [skills]

                PROJECTS
                **[Project Name]**
                • [bullet]

                ACHIEVEMENTS
                • [achievement]

                Provide ONLY the optimized resume text. No code fences, no explanations,
                no commentary. Start directly with the candidate name line.
                """
